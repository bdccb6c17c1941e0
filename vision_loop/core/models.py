# vision_loop/core/models.py

"""
Plain data models for playlists, media items and global settings.

The JSON produced by `to_dict` keeps the camelCase keys the app has always
written, so existing `playlists.json` files keep loading.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional

from vision_loop.constants import (
    DEFAULT_SLIDE_DURATION_SECONDS,
    DEFAULT_TRANSITION,
    MIN_SLIDE_DURATION_SECONDS,
    UNLIMITED_PLAYBACK_DURATION,
)


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"

    @classmethod
    def from_value(cls, value) -> "MediaType":
        try:
            return cls(value)
        except ValueError:
            return cls.IMAGE


class PlaybackMode(str, Enum):
    SEQUENTIAL = "sequential"
    REVERSE = "reverse"
    RANDOM = "random"

    @classmethod
    def from_value(cls, value) -> "PlaybackMode":
        try:
            return cls(value)
        except ValueError:
            return cls.SEQUENTIAL


class PlaybackOrientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"

    @classmethod
    def from_value(cls, value) -> "PlaybackOrientation":
        try:
            return cls(value)
        except ValueError:
            return cls.LANDSCAPE


class DurationUnit(str, Enum):
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"

    @property
    def seconds(self) -> int:
        return {"seconds": 1, "minutes": 60, "hours": 3600}[self.value]

    @classmethod
    def from_value(cls, value) -> "DurationUnit":
        try:
            return cls(value)
        except ValueError:
            return cls.SECONDS


@dataclass
class MediaItem:
    """A single image or video in a playlist. `uri` is the managed file path."""
    id: str
    type: MediaType
    uri: str
    order_index: int
    duration_seconds: Optional[int] = None

    @property
    def is_image(self) -> bool:
        return self.type is MediaType.IMAGE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "uri": self.uri,
            "orderIndex": self.order_index,
            "durationSeconds": self.duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MediaItem":
        duration = data.get("durationSeconds")
        return cls(
            id=str(data["id"]),
            type=MediaType.from_value(data.get("type", "image")),
            uri=str(data["uri"]),
            order_index=int(data.get("orderIndex", 0)),
            duration_seconds=int(duration) if duration is not None else None,
        )


@dataclass
class PlaylistSettings:
    slide_duration_seconds: int = DEFAULT_SLIDE_DURATION_SECONDS
    loop: bool = True
    transition: str = DEFAULT_TRANSITION

    def to_dict(self) -> dict:
        return {
            "slideDurationSeconds": self.slide_duration_seconds,
            "loop": self.loop,
            "transition": self.transition,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PlaylistSettings":
        data = data or {}
        return cls(
            slide_duration_seconds=int(data.get("slideDurationSeconds") or DEFAULT_SLIDE_DURATION_SECONDS),
            loop=bool(data.get("loop", True)),
            transition=data.get("transition") or DEFAULT_TRANSITION,
        )


@dataclass
class Playlist:
    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    items: List[MediaItem] = field(default_factory=list)
    settings: PlaylistSettings = field(default_factory=PlaylistSettings)
    sort_order: int = 0

    @property
    def uris(self) -> List[str]:
        return [item.uri for item in self.items]

    def find_item(self, item_id: str) -> Optional[MediaItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "sortOrder": self.sort_order,
            "settings": self.settings.to_dict(),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Playlist":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data["updatedAt"]),
            settings=PlaylistSettings.from_dict(data.get("settings")),
            items=[MediaItem.from_dict(item) for item in data.get("items", [])],
            sort_order=int(data.get("sortOrder") or 0),
        )


@dataclass(frozen=True)
class AppSettings:
    """Global playback settings shared by every playlist."""
    playback_orientation: PlaybackOrientation = PlaybackOrientation.LANDSCAPE
    slide_duration_seconds: int = DEFAULT_SLIDE_DURATION_SECONDS
    playback_mode: PlaybackMode = PlaybackMode.SEQUENTIAL
    max_playback_duration_seconds: int = UNLIMITED_PLAYBACK_DURATION
    slide_duration_unit: DurationUnit = DurationUnit.SECONDS
    playback_duration_unit: DurationUnit = DurationUnit.SECONDS

    @property
    def max_playback_duration(self) -> Optional[int]:
        """Seconds until playback stops, or None when unlimited."""
        if self.max_playback_duration_seconds <= 0:
            return None
        return self.max_playback_duration_seconds

    def copy_with(self, **changes) -> "AppSettings":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "playbackOrientation": self.playback_orientation.value,
            "slideDurationSeconds": self.slide_duration_seconds,
            "playbackMode": self.playback_mode.value,
            "maxPlaybackDurationSeconds": self.max_playback_duration_seconds,
            "slideDurationUnit": self.slide_duration_unit.value,
            "playbackDurationUnit": self.playback_duration_unit.value,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AppSettings":
        data = data or {}
        slide = int(data.get("slideDurationSeconds") or DEFAULT_SLIDE_DURATION_SECONDS)
        return cls(
            playback_orientation=PlaybackOrientation.from_value(data.get("playbackOrientation")),
            slide_duration_seconds=max(MIN_SLIDE_DURATION_SECONDS, slide),
            playback_mode=PlaybackMode.from_value(data.get("playbackMode")),
            max_playback_duration_seconds=int(
                data.get("maxPlaybackDurationSeconds", UNLIMITED_PLAYBACK_DURATION)
            ),
            slide_duration_unit=DurationUnit.from_value(data.get("slideDurationUnit")),
            playback_duration_unit=DurationUnit.from_value(data.get("playbackDurationUnit")),
        )
