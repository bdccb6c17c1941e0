# vision_loop/utils/file_utils.py

import hashlib
import json
import logging
import os
import sys
import tempfile
from pathlib import Path

from vision_loop.constants import APP_HOME_ENV, APP_NAME, HASH_BLOCK_SIZE
from vision_loop.core.exceptions import SourceNotFoundError

log = logging.getLogger(__name__)

def get_user_data_dir_for_app() -> str:
    """Gets the platform-specific user data directory for the application."""
    user_data_dir = os.environ.get(APP_HOME_ENV, "")
    if user_data_dir:
        pass
    elif os.name == "nt": # Windows
        user_data_dir = os.path.join(os.environ.get("APPDATA", ""), APP_NAME)
    elif sys.platform == "darwin": # macOS
        user_data_dir = os.path.join(os.path.expanduser("~/Library/Application Support"), APP_NAME)
    else: # Linux and other POSIX
        user_data_dir = os.path.join(os.path.expanduser("~/.local/share"), APP_NAME)

    try:
        os.makedirs(user_data_dir, exist_ok=True)
    except OSError as e:
        log.critical(f"Could not create user data directory at {user_data_dir}: {e}")
    return user_data_dir

def generate_file_hash(filepath: str, block_size: int = HASH_BLOCK_SIZE) -> str:
    """
    Generates an MD5 hash over the full contents of a file.

    Raises SourceNotFoundError when the file is missing or cannot be read.
    """
    if not os.path.isfile(filepath):
        raise SourceNotFoundError(f"File not found for hashing: {filepath}")

    hasher = hashlib.md5()
    try:
        with open(filepath, "rb") as f:
            buf = f.read(block_size)
            while len(buf) > 0:
                hasher.update(buf)
                buf = f.read(block_size)
    except OSError as e:
        raise SourceNotFoundError(f"Could not read file for hashing {filepath}: {e}") from e
    return hasher.hexdigest()

def get_file_extension(filepath: str) -> str:
    """Returns the extension with its leading dot, lowercased ('' if none)."""
    return os.path.splitext(filepath)[1].lower()

def normalize_path(filepath) -> str:
    return os.path.normpath(os.path.abspath(os.fspath(filepath)))

def is_within_directory(filepath, directory) -> bool:
    """True when `filepath` resolves to a location inside `directory`."""
    file_path = normalize_path(filepath)
    dir_path = normalize_path(directory)
    try:
        return os.path.commonpath([file_path, dir_path]) == dir_path and file_path != dir_path
    except ValueError:
        # Different drives on Windows
        return False

def read_json(filepath):
    """
    Reads a JSON document. Returns None when the file does not exist.

    Decoding errors are raised to the caller, which decides how lenient to be.
    """
    path = Path(filepath)
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

def write_json_atomic(filepath, data, indent: int | None = 2):
    """
    Writes `data` as JSON next to `filepath` and renames it into place, so
    readers only ever see the old or the new document.
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
