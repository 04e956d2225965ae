"""jarjar - jar-in-jar packaging planner and embedded dependency selector.

Returns:
    int: Exit code
"""
import logging
import os
import sys
import zipfile

from args import parse_args
from common.errors import (
    DuplicateCoordinate,
    ExtractionFailure,
    JarJarError,
    MalformedMetadata,
    MalformedRange,
    VersionOutOfRange,
)
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from config import JarJarConfig, load_config
from constants import Constants, ExitCodes
from extraction.cache import ExtractionCache
from metadata.codec import encode, read_metadata
from metadata.models import Metadata
from planner.archive import write_jar
from planner.plan import load_declarations, plan
from selection.resolver import JarJarResolver

logger = logging.getLogger(__name__)


def _setup_logging(args):
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def describe(metadata: Metadata):
    """Render manifest entries as one line each.

    Args:
        metadata (Metadata): Manifest to describe.

    Returns:
        list: Lines of ``coordinate range resolved path [flags]``.
    """
    lines = []
    for entry in metadata.entries:
        flags = []
        if entry.constraint_only:
            flags.append("constraint")
        if entry.obfuscated:
            flags.append("obfuscated")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        range_text = str(entry.range) if entry.range is not None else "-"
        resolved_text = str(entry.resolved) if entry.resolved is not None else "-"
        lines.append(f"{entry.coordinate} {range_text} {resolved_text} {entry.path}{suffix}")
    return lines


def run_plan(args, config: JarJarConfig):
    """Plan a build from a declarations file and write the manifest (and jar)."""
    try:
        declarations = load_declarations(args.DECLARATIONS)
    except FileNotFoundError as e:
        logging.error("File not found: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except ValueError as e:
        logging.error("Invalid declarations: %s, aborting", e)
        sys.exit(ExitCodes.PLANNING_ERROR.value)

    try:
        result = plan(declarations, config)
    except (DuplicateCoordinate, MalformedRange, VersionOutOfRange) as e:
        logging.error("Planning failed: %s", e)
        sys.exit(ExitCodes.PLANNING_ERROR.value)

    logging.info("Planned %d entries, %d embedded.", len(result.metadata), len(result.writes))
    document = encode(result.metadata)
    if args.OUTPUT:
        with open(args.OUTPUT, "wb") as fh:
            fh.write(document)
    elif not args.JAR:
        sys.stdout.write(document.decode("utf-8"))

    if args.JAR:
        try:
            write_jar(result, args.JAR, base=args.BASE, config=config)
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            logging.error("Could not write %s: %s", args.JAR, e)
            sys.exit(ExitCodes.FILE_ERROR.value)
        logging.info("Wrote %s", args.JAR)


def run_inspect(args, config: JarJarConfig):
    """Print the manifest carried by a jar."""
    try:
        metadata = read_metadata(args.ARCHIVE, config.metadata_path)
    except (OSError, zipfile.BadZipFile) as e:
        logging.error("Cannot read %s: %s", args.ARCHIVE, e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except MalformedMetadata as e:
        logging.error("Invalid metadata in %s: %s", args.ARCHIVE, e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    if metadata is None:
        logging.warning("%s has no jar-in-jar metadata.", args.ARCHIVE)
        return
    for line in describe(metadata):
        print(line)


def run_select(args, config: JarJarConfig):
    """Reconcile several jars' manifests and optionally extract the winners."""
    cache = ExtractionCache(args.CACHE_DIR or config.cache_dir)
    try:
        resolver = JarJarResolver.from_archives(args.ARCHIVES, cache, config.metadata_path)
    except (OSError, zipfile.BadZipFile) as e:
        logging.error("Cannot read archive: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except JarJarError as e:
        logging.error("Selection failed: %s", e)
        sys.exit(ExitCodes.SELECTION_ERROR.value)

    for coordinate, selection in resolver.selections.items():
        location = f"{selection.source}!{selection.path}"
        if args.EXTRACT:
            try:
                location = str(resolver.resolve(coordinate))
            except ExtractionFailure as e:
                logging.error("%s", e)
                sys.exit(ExitCodes.EXTRACTION_ERROR.value)
        print(f"{coordinate} {selection.version} {location}")


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug("CLI start", extra=extra_context(event="function_entry", component="cli",
                                                     action="main", command=args.COMMAND))

    try:
        config = load_config(args.CONFIG)
    except (OSError, ValueError) as e:
        logging.error("Configuration error: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if args.COMMAND == "plan":
        run_plan(args, config)
    elif args.COMMAND == "inspect":
        run_inspect(args, config)
    elif args.COMMAND == "select":
        run_select(args, config)

    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
