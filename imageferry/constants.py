"""
imageferry Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Ephemeral Registry Configuration
DEFAULT_REGISTRY_HOST = "localhost"
DEFAULT_REGISTRY_PORT = 5000
DEFAULT_REGISTRY_IMAGE = "registry:2"
REGISTRY_CONTAINER_PORT = 5000
REGISTRY_BIND_ADDRESS = "127.0.0.1"

# Readiness Probe Configuration
READINESS_MAX_WAIT = 5.0
READINESS_POLL_INTERVAL = 0.1
READINESS_REQUEST_TIMEOUT = 1.0
# 200 from an open registry, 401 from one that wants credentials
READINESS_STATUSES = (200, 401)

# External Tools
DEFAULT_DOCKER_BIN = "docker"
DEFAULT_SSH_BIN = "ssh"

# SSH Configuration
SSH_EXIT_CONNECTION_FAILURE = 255
SSH_TUNNEL_OPTIONS = ["-o", "ExitOnForwardFailure=yes"]

# Child Process Shutdown
PROCESS_STOP_TIMEOUT = 5.0

# Exit Codes
EXIT_OK = 0
EXIT_USAGE_ERROR = 1
EXIT_FLAG_ERROR = 125
EXIT_INTERRUPTED = 130

# Environment Configuration
ENV_PREFIX = "IMAGEFERRY_"
ENV_FILE_NAME = ".env"
USER_CONFIG_DIR = "~/.imageferry"

# Log Configuration
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_TIME_FORMAT = "%H-%M-%S"
