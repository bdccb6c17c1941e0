# vision_loop/core/playback_session.py

import logging
import os

from kivy.clock import Clock
from kivy.event import EventDispatcher

from vision_loop.constants import DEFAULT_SLIDE_DURATION_SECONDS
from vision_loop.core.image_preloader import ImagePreloader
from vision_loop.core.models import AppSettings, MediaItem, PlaybackMode, Playlist
from vision_loop.core.playback_sequencer import PlaybackSequencer

log = logging.getLogger(__name__)


class PlaybackSession(EventDispatcher):
    """
    Drives one full-screen playback of a playlist without rendering it.

    Images advance on a slide timer; videos advance when the player reports
    `on_video_completed()`. The item list is captured at `start()`, so edits to
    the playlist are not seen until the next session.
    """
    __events__ = (
        'on_item_changed', 'on_play_state_changed',
        'on_playback_finished', 'on_duration_limit_reached',
    )

    def __init__(self, playlist: Playlist, app_settings: AppSettings,
                 sequencer=None, preloader=None, clock=None, **kwargs):
        super().__init__(**kwargs)
        self.playlist = playlist
        self.app_settings = app_settings
        self.sequencer = sequencer or PlaybackSequencer(
            playlist.items, app_settings.playback_mode, playlist.settings.loop
        )
        self.preloader = preloader or ImagePreloader()
        self.clock = clock or Clock
        self.is_active = False
        self.is_playing = False
        self._slide_event = None
        self._duration_event = None

    @property
    def current_index(self) -> int:
        return self.sequencer.current_index

    @property
    def current_item(self) -> MediaItem | None:
        items = self.sequencer.items
        if not items:
            return None
        return items[self.sequencer.current_index]

    def slide_duration_for(self, item: MediaItem) -> int:
        return (
            item.duration_seconds
            or self.app_settings.slide_duration_seconds
            or self.playlist.settings.slide_duration_seconds
            or DEFAULT_SLIDE_DURATION_SECONDS
        )

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------
    def start(self):
        self.sequencer.reset(
            self.playlist.items, self.app_settings.playback_mode, self.playlist.settings.loop
        )
        self.is_active = True
        self.is_playing = True
        log.info(
            f"Playback started: playlist={self.playlist.id}, items={len(self.sequencer)}, "
            f"mode={self.sequencer.mode.value}, loop={self.sequencer.loop}"
        )
        self._start_duration_limit()
        self._start_current()

    def stop(self):
        self._cancel_slide_timer()
        if self._duration_event is not None:
            self._duration_event.cancel()
            self._duration_event = None
        self.is_active = False
        self.is_playing = False
        self.preloader.clear()
        log.info(f"Playback stopped at index {self.current_index}")

    def _start_duration_limit(self):
        limit = self.app_settings.max_playback_duration
        if limit is None:
            log.debug("Playback duration: unlimited")
            return
        log.debug(f"Playback duration limited to {limit}s")
        self._duration_event = self.clock.schedule_once(self._on_duration_limit, limit)

    def _on_duration_limit(self, dt):
        log.info("Playback duration limit reached, stopping.")
        self._duration_event = None
        self.stop()
        self.dispatch('on_duration_limit_reached')

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------
    def next(self) -> bool:
        if not self.is_active or not self.sequencer.items:
            return False
        if not self.sequencer.can_advance():
            log.info("Reached the end of the playlist without looping.")
            self._cancel_slide_timer()
            self.is_playing = False
            self.dispatch('on_playback_finished')
            return False
        self.sequencer.move_to(self.sequencer.advance())
        self._start_current()
        return True

    def previous(self) -> bool:
        if not self.is_active or not self.sequencer.items:
            return False
        new_index = self.sequencer.retreat()
        if new_index == self.current_index and self.sequencer.mode is not PlaybackMode.RANDOM:
            return False
        self.sequencer.move_to(new_index)
        self._start_current()
        return True

    def on_video_completed(self):
        """Called by the video player when the current clip ends."""
        if self.is_playing:
            self.next()

    def toggle_play_pause(self):
        if not self.is_active:
            return
        self.is_playing = not self.is_playing
        item = self.current_item
        if item is not None and item.is_image:
            self._cancel_slide_timer()
            if self.is_playing:
                self._schedule_slide_timer(item)
        self.dispatch('on_play_state_changed', self.is_playing)

    # -------------------------------------------------------------------------
    # Media handling
    # -------------------------------------------------------------------------
    def _start_current(self):
        self._cancel_slide_timer()
        item = self.current_item
        if item is None:
            return

        if not os.path.isfile(item.uri):
            log.error(f"Media file does not exist: {item.uri}")
        log.debug(f"Showing {item.type.value} at index {self.current_index}: {item.uri}")

        if item.is_image:
            self.preloader.preload(item)
            if self.is_playing:
                self._schedule_slide_timer(item)
        self.dispatch('on_item_changed', self.current_index, item)
        self._preload_neighbours(item)

    def _preload_neighbours(self, item: MediaItem):
        keep = [item.id]
        for index in (self.sequencer.next_preload_index(), self.sequencer.previous_preload_index()):
            if index is None:
                continue
            neighbour = self.sequencer.items[index]
            if self.preloader.preload(neighbour):
                keep.append(neighbour.id)
        self.preloader.retain(keep)

    def _schedule_slide_timer(self, item: MediaItem):
        self._slide_event = self.clock.schedule_once(self._on_slide_timer, self.slide_duration_for(item))

    def _cancel_slide_timer(self):
        if self._slide_event is not None:
            self._slide_event.cancel()
            self._slide_event = None

    def _on_slide_timer(self, dt):
        self._slide_event = None
        self.next()

    def on_item_changed(self, index, item):
        pass

    def on_play_state_changed(self, is_playing):
        pass

    def on_playback_finished(self):
        pass

    def on_duration_limit_reached(self):
        pass
