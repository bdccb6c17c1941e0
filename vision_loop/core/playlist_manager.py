# vision_loop/core/playlist_manager.py

import logging
import os
from collections import Counter
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from kivy.event import EventDispatcher
from kivy.properties import ListProperty

from vision_loop.constants import PLAYLISTS_FILE
from vision_loop.core.exceptions import (
    MediaItemNotFoundError,
    PlaylistError,
    PlaylistNotFoundError,
    SourceNotFoundError,
    VisionLoopError,
)
from vision_loop.core.models import MediaItem, MediaType, Playlist, PlaylistSettings
from vision_loop.utils.file_utils import get_user_data_dir_for_app, read_json, write_json_atomic
from vision_loop.utils.id_generator import generate_id
from vision_loop.utils.image_utils import detect_media_type

log = logging.getLogger(__name__)


class PlaylistManager(EventDispatcher):
    """
    Owns the saved playlists and keeps managed-file references in step with them.

    Every media item's `uri` holds one reference in the ContentStore; removing
    the item or its playlist releases that reference.
    """
    __events__ = ('on_playlist_list_changed', 'on_playlist_content_changed')

    playlist_names = ListProperty([])

    def __init__(self, content_store, user_data_dir=None, **kwargs):
        super().__init__(**kwargs)
        self.content_store = content_store
        user_data_dir = Path(user_data_dir or get_user_data_dir_for_app())
        self._playlists_path = user_data_dir / PLAYLISTS_FILE
        self._playlists: List[Playlist] = []
        self.load_playlists()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------
    def load_playlists(self):
        """Loads playlists from the JSON file into memory."""
        log.info(f"Loading playlists from: {self._playlists_path}")
        try:
            document = read_json(self._playlists_path)
        except (OSError, ValueError) as e:
            log.error(f"Failed to load or parse playlists file: {e}")
            document = None

        self._playlists = []
        if isinstance(document, list):
            for entry in document:
                try:
                    self._playlists.append(Playlist.from_dict(entry))
                except (KeyError, TypeError, ValueError) as e:
                    log.error(f"Skipping malformed playlist entry: {e}")
        elif document is not None:
            log.error("Playlists file does not contain a list, starting empty.")

        self._playlists.sort(key=lambda p: p.sort_order)

        self._update_public_properties()
        log.info(f"Loaded {len(self._playlists)} playlists.")
        self.dispatch('on_playlist_list_changed')

    def _save_playlists(self, content_changed_playlist: str = None):
        try:
            write_json_atomic(self._playlists_path, [p.to_dict() for p in self._playlists])
        except OSError as e:
            log.error(f"Failed to save playlists to {self._playlists_path}: {e}")
            raise PlaylistError(f"Could not save playlists: {e}")

        if content_changed_playlist:
            self.dispatch('on_playlist_content_changed', content_changed_playlist)

    def _update_public_properties(self):
        self.playlist_names = [p.name for p in self._playlists]

    def _touch(self, playlist: Playlist):
        playlist.updated_at = datetime.now()

    def _snapshot(self):
        return [(playlist, playlist.sort_order) for playlist in self._playlists]

    def _restore(self, snapshot):
        """Puts the in-memory list back the way `_snapshot` saw it after a failed save."""
        self._playlists = [playlist for playlist, _ in snapshot]
        for playlist, sort_order in snapshot:
            playlist.sort_order = sort_order
        self._update_public_properties()

    def _renumber_playlists(self):
        for index, playlist in enumerate(self._playlists):
            playlist.sort_order = index

    @staticmethod
    def _playlist_name(name: Optional[str]) -> str:
        # An unnamed playlist is named after the moment it was saved.
        name = (name or "").strip()
        return name or datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------
    def get_playlists(self) -> List[Playlist]:
        return list(self._playlists)

    def get_playlist(self, playlist_id: str) -> Playlist:
        for playlist in self._playlists:
            if playlist.id == playlist_id:
                return playlist
        raise PlaylistNotFoundError(f"Playlist '{playlist_id}' not found.")

    def create_playlist(self, name: str = "") -> Playlist:
        """Creates an empty playlist at the end of the list."""
        now = datetime.now()
        sort_order = max((p.sort_order for p in self._playlists), default=-1) + 1
        playlist = Playlist(
            id=generate_id("pl"), name=self._playlist_name(name),
            created_at=now, updated_at=now, sort_order=sort_order,
        )
        log.info(f"Creating new playlist: {playlist.name} ({playlist.id})")
        snapshot = self._snapshot()
        self._playlists.append(playlist)
        self._update_public_properties()
        try:
            self._save_playlists()
        except PlaylistError:
            self._restore(snapshot)
            raise
        self.dispatch('on_playlist_list_changed')
        return playlist

    def upsert(self, playlist: Playlist):
        """
        Replaces the playlist with the same id, or appends it.

        Every uri in `playlist` must already hold its reference. Uris the
        previous version had and this one no longer has are released.
        """
        snapshot = self._snapshot()
        previous = None
        for index, existing in enumerate(self._playlists):
            if existing.id == playlist.id:
                previous = existing
                self._playlists[index] = playlist
                break
        else:
            self._playlists.append(playlist)
        self._update_public_properties()
        try:
            self._save_playlists(content_changed_playlist=playlist.id)
        except PlaylistError:
            self._restore(snapshot)
            raise
        self.dispatch('on_playlist_list_changed')

        if previous is not None:
            dropped = Counter(previous.uris) - Counter(playlist.uris)
            if dropped:
                self.content_store.decrement_ref_counts(list(dropped.elements()))

    def move_playlist(self, playlist_id: str, new_position: int):
        """Moves a playlist within the list and renumbers every sort_order."""
        playlist = self.get_playlist(playlist_id)
        snapshot = self._snapshot()
        self._playlists.remove(playlist)
        new_position = max(0, min(len(self._playlists), int(new_position)))
        self._playlists.insert(new_position, playlist)
        self._renumber_playlists()
        self._update_public_properties()
        try:
            self._save_playlists()
        except PlaylistError:
            self._restore(snapshot)
            raise
        self.dispatch('on_playlist_list_changed')

    def rename_playlist(self, playlist_id: str, name: str):
        playlist = self.get_playlist(playlist_id)
        playlist.name = self._playlist_name(name)
        self._touch(playlist)
        self._update_public_properties()
        self._save_playlists(content_changed_playlist=playlist_id)
        self.dispatch('on_playlist_list_changed')

    def update_playlist_settings(self, playlist_id: str, **changes) -> PlaylistSettings:
        """Updates slide_duration_seconds, loop and/or transition."""
        playlist = self.get_playlist(playlist_id)
        playlist.settings = replace(playlist.settings, **changes)
        self._touch(playlist)
        self._save_playlists(content_changed_playlist=playlist_id)
        return playlist.settings

    def delete_playlist(self, playlist_id: str):
        self.delete_playlists([playlist_id])

    def delete_playlists(self, playlist_ids: Iterable[str]):
        """Deletes playlists and releases every file their items referenced."""
        doomed = [self.get_playlist(playlist_id) for playlist_id in dict.fromkeys(playlist_ids)]
        if not doomed:
            return
        snapshot = self._snapshot()
        for playlist in doomed:
            log.info(f"Deleting playlist: {playlist.name} ({playlist.id}, {len(playlist.items)} items)")
            self._playlists.remove(playlist)
        self._renumber_playlists()
        self._update_public_properties()
        try:
            self._save_playlists()
        except PlaylistError:
            self._restore(snapshot)
            raise
        self.dispatch('on_playlist_list_changed')

        self.content_store.decrement_ref_counts([uri for p in doomed for uri in p.uris])

    # -------------------------------------------------------------------------
    # Media items
    # -------------------------------------------------------------------------
    def add_media(self, playlist_id: str, original_path, media_type=None,
                  duration_seconds: Optional[int] = None) -> MediaItem:
        """
        Copies a picked file into managed storage and appends it to the playlist.

        The media type is detected from the file when not given.
        """
        playlist = self.get_playlist(playlist_id)
        original_path = os.fspath(original_path)
        if not os.path.isfile(original_path):
            raise SourceNotFoundError(f"Original file does not exist: {original_path}")
        media_type = MediaType(media_type) if media_type else detect_media_type(original_path)

        managed_path = self.content_store.add_file(original_path)
        item = MediaItem(
            id=generate_id("mi"),
            type=media_type,
            uri=managed_path,
            order_index=len(playlist.items),
            duration_seconds=duration_seconds,
        )
        playlist.items.append(item)
        self._touch(playlist)
        try:
            self._save_playlists(content_changed_playlist=playlist_id)
        except PlaylistError:
            playlist.items.remove(item)
            self.content_store.decrement_ref_count(managed_path)
            raise
        log.info(f"Added {media_type.value} to '{playlist.name}': {os.path.basename(original_path)}")
        return item

    def add_media_files(self, playlist_id: str, original_paths: Iterable) -> List[MediaItem]:
        """Adds several files, skipping (and logging) the ones that fail."""
        added = []
        for original_path in original_paths:
            try:
                added.append(self.add_media(playlist_id, original_path))
            except PlaylistNotFoundError:
                raise
            except VisionLoopError as e:
                log.error(f"FAILED: could not add {original_path}: {e}")
        return added

    def remove_media(self, playlist_id: str, item_id: str) -> MediaItem:
        playlist = self.get_playlist(playlist_id)
        item = self._get_item(playlist, item_id)
        previous_items = list(playlist.items)
        playlist.items.remove(item)
        self._renumber(playlist)
        self._touch(playlist)
        try:
            self._save_playlists(content_changed_playlist=playlist_id)
        except PlaylistError:
            playlist.items[:] = previous_items
            self._renumber(playlist)
            raise
        self.content_store.decrement_ref_count(item.uri)
        log.info(f"Removed item {item_id} from '{playlist.name}'")
        return item

    def clear_media(self, playlist_id: str) -> List[MediaItem]:
        """Empties a playlist and releases every file its items referenced."""
        playlist = self.get_playlist(playlist_id)
        removed = list(playlist.items)
        if not removed:
            return []
        playlist.items.clear()
        self._touch(playlist)
        try:
            self._save_playlists(content_changed_playlist=playlist_id)
        except PlaylistError:
            playlist.items[:] = removed
            raise
        self.content_store.decrement_ref_counts([item.uri for item in removed])
        log.info(f"Cleared {len(removed)} items from '{playlist.name}'")
        return removed

    def move_media(self, playlist_id: str, item_id: str, new_position: int):
        playlist = self.get_playlist(playlist_id)
        item = self._get_item(playlist, item_id)
        playlist.items.remove(item)
        new_position = max(0, min(len(playlist.items), int(new_position)))
        playlist.items.insert(new_position, item)
        self._renumber(playlist)
        self._touch(playlist)
        self._save_playlists(content_changed_playlist=playlist_id)

    def set_item_duration(self, playlist_id: str, item_id: str, duration_seconds: Optional[int]):
        """Sets an image's dwell time (or a video's trimmed length). None restores the default."""
        if duration_seconds is not None and int(duration_seconds) <= 0:
            raise ValueError("Item duration must be positive.")
        playlist = self.get_playlist(playlist_id)
        item = self._get_item(playlist, item_id)
        item.duration_seconds = int(duration_seconds) if duration_seconds is not None else None
        self._touch(playlist)
        self._save_playlists(content_changed_playlist=playlist_id)

    def _get_item(self, playlist: Playlist, item_id: str) -> MediaItem:
        item = playlist.find_item(item_id)
        if item is None:
            raise MediaItemNotFoundError(f"Item '{item_id}' not found in playlist '{playlist.id}'.")
        return item

    def _renumber(self, playlist: Playlist):
        for index, item in enumerate(playlist.items):
            item.order_index = index

    def on_playlist_list_changed(self, *args):
        log.debug("PlaylistManager: on_playlist_list_changed event fired.")
        pass

    def on_playlist_content_changed(self, playlist_id: str):
        log.debug(f"PlaylistManager: on_playlist_content_changed event fired for '{playlist_id}'.")
        pass
