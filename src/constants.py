"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3


class ImportStatus(Enum):
    """Build status reported by the CDN in the ``x-import-status`` header.

    Args:
        Enum (string): Build states of an on-demand package build.
    """

    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAIL = "FAIL"


class CDNHeaders:  # pylint: disable=too-few-public-methods
    """Response header names of the CDN lookup protocol (lowercase)."""

    IMPORT_STATUS = "x-import-status"
    IMPORT_URL = "x-import-url"
    PINNED_URL = "x-pinned-url"
    TYPESCRIPT_TYPES = "x-typescript-types"
    CACHE_CONTROL = "cache-control"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CDN_ORIGIN = "https://cdn.skypack.dev"
    USER_AGENT = "webpin/0.1.0"
    LOCKFILE_NAME = "webpin.lock.json"
    CONFIG_NAME = "webpin.config.yaml"
    CACHE_DIR = "~/.cache/webpin/resources"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests

    # Resolution
    RESOLVE_CONCURRENCY = 16
    MAX_LOOKUP_ATTEMPTS = 2
    LATEST = "latest"
    DEPRECATED_SEMVER_PREFIXES = ("npm:@reactesm", "npm:@pika/react")

    # In-process response memo bounds
    MEMO_MAX_ENTRIES = 1000
    MEMO_MAX_BYTES = 100 * 1024 * 1024  # 100MB

    # Environment overrides
    ENV_LOG_LEVEL = "WEBPIN_LOG_LEVEL"
    ENV_ORIGIN = "WEBPIN_ORIGIN"
    ENV_CACHE_DIR = "WEBPIN_CACHE_DIR"
