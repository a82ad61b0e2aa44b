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
    UNRESOLVED_NODES = 3
    INPUT_ERROR = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration defaults; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    # Abbreviated packument; carries the versions map without readmes.
    NPM_METADATA_ACCEPT = (
        "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"
    )
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "DEPTREE_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    USER_AGENT = "deptree/0.1"

    # Resolution engine
    MAX_WORKERS = 16
    DEFAULT_CONSTRAINT = "*"

    # Resolution cache
    CACHE_MAX_ENTRIES = 1000
    CACHE_TTL_SEC = 0  # 0 disables expiry

    # HTTP service
    SERVER_HOST = "127.0.0.1"
    SERVER_PORT = 8080
    HEALTH_PATH = "/_deptree/health"
