"""Argument parsing functionality for jarjar."""

import argparse


def build_parser():
    """Build the argument parser with its sub-commands."""
    parser = argparse.ArgumentParser(
        prog="jarjar",
        description="Jar-in-jar packaging planner and embedded dependency selector",
        add_help=True,
    )

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store",
                        type=str)

    commands = parser.add_subparsers(dest="COMMAND", metavar="command")
    commands.required = True

    plan_cmd = commands.add_parser("plan", help="Plan the embedded jars of a build")
    plan_cmd.add_argument("-d", "--declarations",
                          dest="DECLARATIONS",
                          help="YAML file listing the dependencies to embed",
                          action="store", type=str, required=True)
    plan_cmd.add_argument("-o", "--output",
                          dest="OUTPUT",
                          help="Write the manifest to this file instead of stdout",
                          action="store", type=str)
    plan_cmd.add_argument("--jar",
                          dest="JAR",
                          help="Write a jar containing the embedded jars and manifest",
                          action="store", type=str)
    plan_cmd.add_argument("--base",
                          dest="BASE",
                          help="Existing jar whose entries are copied into --jar",
                          action="store", type=str)

    inspect_cmd = commands.add_parser("inspect", help="Print the manifest of a jar")
    inspect_cmd.add_argument("ARCHIVE", help="Jar to read", type=str)

    select_cmd = commands.add_parser("select", help="Reconcile the manifests of several jars")
    select_cmd.add_argument("ARCHIVES", help="Jars present on the classpath", nargs="+", type=str)
    select_cmd.add_argument("-x", "--extract",
                            dest="EXTRACT",
                            help="Materialize the selected jars into the cache directory",
                            action="store_true")
    select_cmd.add_argument("--cache-dir",
                            dest="CACHE_DIR",
                            help="Directory for extracted jars (overrides config)",
                            action="store", type=str)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
