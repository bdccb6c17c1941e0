# vision_loop/utils/image_utils.py

import logging

from PIL import Image, UnidentifiedImageError

from vision_loop.constants import SUPPORTED_IMAGE_EXTENSIONS, SUPPORTED_VIDEO_EXTENSIONS
from vision_loop.core.exceptions import UnsupportedMediaError
from vision_loop.core.models import MediaType
from vision_loop.utils.file_utils import get_file_extension

log = logging.getLogger(__name__)

def is_readable_image(filepath: str) -> bool:
    """True when Pillow can identify the file as an image."""
    try:
        with Image.open(filepath) as img:
            img.verify()
        return True
    except (OSError, UnidentifiedImageError, SyntaxError) as e:
        log.debug(f"Not a readable image {filepath}: {e}")
        return False

def detect_media_type(filepath: str) -> MediaType:
    """
    Classifies a picked file as image or video by extension, falling back to
    Pillow for images with unusual or missing extensions.
    """
    extension = get_file_extension(filepath)
    if extension in SUPPORTED_IMAGE_EXTENSIONS:
        return MediaType.IMAGE
    if extension in SUPPORTED_VIDEO_EXTENSIONS:
        return MediaType.VIDEO
    if is_readable_image(filepath):
        return MediaType.IMAGE
    raise UnsupportedMediaError(f"Unsupported media file: {filepath}")
