# vision_loop/core/exceptions.py

class VisionLoopError(Exception):
    """Base exception class for all application-specific errors."""
    pass

# --- Media Store Errors ---
class MediaStoreError(VisionLoopError):
    """Base exception for managed media storage operations."""
    pass

class SourceNotFoundError(MediaStoreError):
    """Raised when a file to be added does not exist or cannot be read."""
    pass

class CopyFailedError(MediaStoreError):
    """Raised when a file cannot be copied into managed storage."""
    pass

class DeleteFailedError(MediaStoreError):
    """Describes a managed file that could not be deleted. Logged, not raised to callers."""
    pass

class UnsupportedMediaError(VisionLoopError):
    """Raised when a file is neither a known video nor a readable image."""
    pass

# --- Playlist Errors ---
class PlaylistError(VisionLoopError):
    """Base exception for playlist-related operations."""
    pass

class PlaylistNotFoundError(PlaylistError):
    """Raised when a specified playlist cannot be found."""
    pass

class MediaItemNotFoundError(PlaylistError):
    """Raised when a media item is not part of the given playlist."""
    pass

# --- Settings Errors ---
class SettingsError(VisionLoopError):
    """Raised when a settings value is out of range or of the wrong kind."""
    pass
