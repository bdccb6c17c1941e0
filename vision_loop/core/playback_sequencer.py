# vision_loop/core/playback_sequencer.py

"""
Decides which playlist item plays next.

`advance()` and `retreat()` only compute an index; the caller commits it
with `move_to()` once it has switched the displayed media. In random mode
every index is visited once per cycle, and `retreat()` walks back through
the order actually played.
"""

import logging
import random
from typing import List, Optional, Sequence

from vision_loop.core.models import MediaType, PlaybackMode

log = logging.getLogger(__name__)


class PlaybackSequencer:
    def __init__(
        self,
        items: Sequence = (),
        mode: PlaybackMode = PlaybackMode.SEQUENTIAL,
        loop: bool = True,
        rng: Optional[random.Random] = None,
    ):
        self._rng = rng or random.Random()
        self.items = list(items)
        self.mode = PlaybackMode.from_value(mode)
        self.loop = bool(loop)
        self._current_index = self._start_index()
        self._played_history: List[int] = []

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------
    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def played_history(self) -> List[int]:
        return list(self._played_history)

    def __len__(self):
        return len(self.items)

    def reset(self, items: Optional[Sequence] = None, mode: Optional[PlaybackMode] = None, loop: Optional[bool] = None):
        """Starts a new session at the opening item with an empty history."""
        if items is not None:
            self.items = list(items)
        if mode is not None:
            self.mode = PlaybackMode.from_value(mode)
        if loop is not None:
            self.loop = bool(loop)
        self._current_index = self._start_index()
        self._played_history.clear()
        log.debug(f"Sequencer reset: {len(self.items)} items, mode={self.mode.value}, loop={self.loop}")

    def _start_index(self) -> int:
        # Reverse playback opens on the last item so a non-looping run shows them all.
        if self.mode is PlaybackMode.REVERSE and self.items:
            return len(self.items) - 1
        return 0

    def move_to(self, index: int):
        if not self.items:
            return
        if not 0 <= index < len(self.items):
            raise IndexError(f"Index {index} out of range for {len(self.items)} items")
        self._current_index = index

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------
    def advance(self) -> int:
        if not self.items:
            return self._current_index
        if self.mode is PlaybackMode.SEQUENTIAL:
            return self._step(1)
        if self.mode is PlaybackMode.REVERSE:
            return self._step(-1)
        return self._advance_random()

    def retreat(self) -> int:
        if not self.items:
            return self._current_index
        if self.mode is PlaybackMode.SEQUENTIAL:
            return self._step(-1)
        if self.mode is PlaybackMode.REVERSE:
            return self._step(1)
        return self._retreat_random()

    def can_advance(self) -> bool:
        """False when a non-looping sequential/reverse playlist is at its end."""
        if not self.items:
            return False
        if self.mode is PlaybackMode.RANDOM or self.loop:
            return True
        return self.advance() != self._current_index

    def _step(self, delta: int) -> int:
        new_index = self._current_index + delta
        if 0 <= new_index < len(self.items):
            return new_index
        if not self.loop:
            return self._current_index
        return new_index % len(self.items)

    def _advance_random(self) -> int:
        count = len(self.items)
        if len(self._played_history) >= count:
            log.debug("Random mode: every item played, starting a new cycle.")
            self._played_history.clear()

        # The item on screen counts as played, so a cycle never repeats it.
        unplayed = [
            index for index in range(count)
            if index not in self._played_history and index != self._current_index
        ]
        if not unplayed:
            return self._current_index

        new_index = self._rng.choice(unplayed)
        for index in (self._current_index, new_index):
            if index not in self._played_history:
                self._played_history.append(index)
        return new_index

    def _retreat_random(self) -> int:
        if len(self._played_history) < 2:
            others = [index for index in range(len(self.items)) if index != self._current_index]
            return self._rng.choice(others) if others else self._current_index

        try:
            position = self._played_history.index(self._current_index)
        except ValueError:
            position = 0
        if position > 0:
            return self._played_history[position - 1]
        return self._played_history[-1]

    # -------------------------------------------------------------------------
    # Preloading
    # -------------------------------------------------------------------------
    def next_preload_index(self) -> Optional[int]:
        """Index `advance()` will show if it is an image, else None. Unknown in random mode."""
        if not self.items or self.mode is PlaybackMode.RANDOM:
            return None
        return self._image_index_or_none(self.advance())

    def previous_preload_index(self) -> Optional[int]:
        if not self.items or self.mode is PlaybackMode.RANDOM:
            return None
        return self._image_index_or_none(self.retreat())

    def _image_index_or_none(self, index: int) -> Optional[int]:
        if index == self._current_index:
            return None
        if getattr(self.items[index], "type", None) is MediaType.IMAGE:
            return index
        return None
