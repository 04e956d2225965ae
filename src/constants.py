"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    PLANNING_ERROR = 2
    SELECTION_ERROR = 3
    EXTRACTION_ERROR = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    JAR_DIRECTORY = "META-INF/jarjar"
    METADATA_PATH = "META-INF/jarjar/metadata.json"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "JARJAR_LOG_LEVEL"
    ENV_CONFIG = "JARJAR_CONFIG"
    ENV_CACHE_DIR = "JARJAR_CACHE_DIR"
    CONFIG_FILE = "jarjar.yml"
    DEFAULT_CACHE_DIR = ".jarjar-cache"
    # Range used when a declaration names no range: "at least the resolved version".
    DEFAULT_RANGE_TEMPLATE = "[{version},)"
    # Fixed entry timestamp so repeated builds produce identical archives.
    ARCHIVE_TIMESTAMP = (1980, 2, 1, 0, 0, 0)
    COPY_CHUNK_SIZE = 64 * 1024
