# vision_loop/app.py

import logging

from vision_loop.constants import APP_NAME, APP_VERSION
from vision_loop.core.content_store import ContentStore
from vision_loop.core.playback_session import PlaybackSession
from vision_loop.core.playlist_manager import PlaylistManager
from vision_loop.core.settings_manager import SettingsManager
from vision_loop.utils.file_utils import get_user_data_dir_for_app

log = logging.getLogger(__name__)


class VisionLoopApp:
    """
    Builds the application services and hands them to whoever needs them.

    Nothing here is a process-wide singleton: screens (or the CLI) receive the
    managers built in `build()`.
    """

    def __init__(self, user_data_dir=None):
        self.user_data_dir = user_data_dir or get_user_data_dir_for_app()
        self.settings_manager = None
        self.content_store = None
        self.playlist_manager = None
        self.session = None

    def build(self, sweep: bool = True, background_sweep: bool = True):
        log.info(f"Starting {APP_NAME} v{APP_VERSION}, data directory: {self.user_data_dir}")
        self.settings_manager = SettingsManager(user_data_dir=self.user_data_dir)
        self.content_store = ContentStore(user_data_dir=self.user_data_dir)
        self.content_store.initialize(sweep=sweep, background=background_sweep)
        self.playlist_manager = PlaylistManager(
            content_store=self.content_store, user_data_dir=self.user_data_dir
        )
        return self

    def create_session(self, playlist_id: str, **kwargs) -> PlaybackSession:
        """Creates a playback session for a playlist with the current global settings."""
        if self.session is not None and self.session.is_active:
            self.session.stop()
        playlist = self.playlist_manager.get_playlist(playlist_id)
        self.session = PlaybackSession(
            playlist=playlist,
            app_settings=self.settings_manager.get_app_settings(),
            **kwargs,
        )
        return self.session

    def on_stop(self):
        log.info(f"{APP_NAME} is shutting down.")
        if self.session is not None and self.session.is_active:
            self.session.stop()
        if self.content_store is not None:
            self.content_store.orphan_collector.join(timeout=5)
