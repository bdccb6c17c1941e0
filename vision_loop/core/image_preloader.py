# vision_loop/core/image_preloader.py

import logging
import os
from io import BytesIO
from typing import Dict, Optional

from PIL import Image, UnidentifiedImageError

from vision_loop.core.models import MediaItem

log = logging.getLogger(__name__)


class ImagePreloader:
    """Keeps the raw bytes of upcoming images in memory. Videos are streamed and never cached."""

    def __init__(self):
        self._cache: Dict[str, bytes] = {}

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._cache

    def get(self, item_id: str) -> Optional[bytes]:
        return self._cache.get(item_id)

    def preload(self, item: MediaItem) -> bool:
        """Reads and caches an image item. Returns True if it is cached afterwards."""
        if not item.is_image:
            log.debug(f"Preload skipped, not an image: {item.id} ({item.type.value})")
            return False
        if item.id in self._cache:
            return True
        if not os.path.isfile(item.uri):
            log.warning(f"Preload skipped, file does not exist: {item.uri}")
            return False

        try:
            with open(item.uri, "rb") as f:
                data = f.read()
            with Image.open(BytesIO(data)) as img:
                width, height = img.size
        except (OSError, UnidentifiedImageError) as e:
            log.error(f"Failed to preload image {item.uri}: {e}")
            return False

        self._cache[item.id] = data
        log.debug(f"Preloaded {item.uri} ({width}x{height}, {len(data)} bytes)")
        return True

    def retain(self, item_ids):
        """Drops every cached image whose id is not in `item_ids`."""
        keep = set(item_ids)
        for item_id in [key for key in self._cache if key not in keep]:
            del self._cache[item_id]

    def stats(self) -> dict:
        return {
            'count': len(self._cache),
            'total_size': sum(len(data) for data in self._cache.values()),
        }

    def clear(self):
        count = len(self._cache)
        self._cache.clear()
        log.debug(f"Cleared preload cache ({count} images)")
