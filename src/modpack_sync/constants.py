"""Constants for modpack-sync."""

# Version
VERSION = "0.1.0"

APP_NAME = "modpack-sync"
APP_AUTHOR = "modpack-sync"

# Scratch workspace layout (inside the workspace root)
ARCHIVE_FILE = "mods.zip"
EXTRACT_DIR = "mods_extracted"
WORKSPACE_DIR = "workspace"

# Configuration
CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "MODPACK_SYNC_CONFIG"
LOG_FILE = "modpack-sync.log"

# Network
DEFAULT_TIMEOUT = 30.0
DOWNLOAD_CHUNK_SIZE = 64 * 1024
USER_AGENT = f"{APP_NAME}/{VERSION}"

# Hashing
HASH_CHUNK_SIZE = 8192

# Seconds to wait for another invocation to release the scratch workspace
DEFAULT_LOCK_TIMEOUT = 60.0
