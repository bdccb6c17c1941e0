# vision_loop/constants.py


# =============================================================================
# Application Metadata
# =============================================================================
APP_NAME = "Vision Loop"
APP_VERSION = "1.0.0"
APP_HOME_ENV = "VISION_LOOP_HOME"

# =============================================================================
# File and Directory Names
# =============================================================================
SETTINGS_FILE = "vision_loop_settings.json"
PLAYLISTS_FILE = "playlists.json"
REFERENCE_TABLE_FILE = "media_files.json"
MEDIA_FILES_DIR = "media_files"
LOG_DIR = "logs"
LOG_FILE = "app.log"

# =============================================================================
# Supported Formats
# =============================================================================
SUPPORTED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".heic", ".heif",)
SUPPORTED_VIDEO_EXTENSIONS = (".mp4", ".mov", ".m4v", ".3gp", ".mkv", ".webm", ".avi",)

# =============================================================================
# Reference Table
# =============================================================================
REFERENCE_TABLE_VERSION = 2
LEGACY_KEY_HASH_TO_PATH = "media_file_hash_to_path"
LEGACY_KEY_REF_COUNT = "media_file_ref_count"
HASH_BLOCK_SIZE = 65536

# =============================================================================
# Settings Keys
# =============================================================================
CONFIG_KEY_ORIENTATION = "playback_orientation"
CONFIG_KEY_SLIDE_DURATION = "slide_duration_seconds"
CONFIG_KEY_PLAYBACK_MODE = "playback_mode"
CONFIG_KEY_MAX_PLAYBACK_DURATION = "max_playback_duration_seconds"
CONFIG_KEY_SLIDE_DURATION_UNIT = "slide_duration_unit"
CONFIG_KEY_PLAYBACK_DURATION_UNIT = "playback_duration_unit"

# =============================================================================
# Playback Defaults
# =============================================================================
DEFAULT_SLIDE_DURATION_SECONDS = 3
MIN_SLIDE_DURATION_SECONDS = 1
UNLIMITED_PLAYBACK_DURATION = -1
DEFAULT_TRANSITION = "fade"
