# Constants
DEFAULT_PART_SIZE = 10 * 1024 * 1024  # 10 MB
DEFAULT_PARALLEL_PARTS = 5
READ_BLOCK_SIZE = 64 * 1024
DEFAULT_UPDATE_INTERVAL = 0.5  # seconds

# Commands
COMMAND_UPLOAD = "upload"
COMMAND_DOWNLOAD = "download"
COMMAND_DELETE = "delete"
COMMAND_LIST = "list"
COMMAND_SAVE_CONFIG = "save-config"

# Configuration
CONFIG_DIR_ENV = "UDL_CONFIG_DIR"
CONFIG_DIR_NAME = "udl"
CONFIG_FILE_NAME = "config.json"
