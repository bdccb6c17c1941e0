"""Tests for vision_loop.core.playback_sequencer."""

import random

import pytest

from conftest import media_items
from vision_loop.core.models import PlaybackMode
from vision_loop.core.playback_sequencer import PlaybackSequencer


def walk(sequencer, steps, backwards=False):
    visited = [sequencer.current_index]
    for _ in range(steps):
        index = sequencer.retreat() if backwards else sequencer.advance()
        sequencer.move_to(index)
        visited.append(index)
    return visited


class TestSequential:
    def test_advance_wraps_when_looping(self):
        seq = PlaybackSequencer(media_items("iii"), PlaybackMode.SEQUENTIAL, loop=True)
        assert walk(seq, 4) == [0, 1, 2, 0, 1]

    def test_retreat_wraps_when_looping(self):
        seq = PlaybackSequencer(media_items("iii"), PlaybackMode.SEQUENTIAL, loop=True)
        assert walk(seq, 3, backwards=True) == [0, 2, 1, 0]

    def test_stops_at_end_without_loop(self):
        seq = PlaybackSequencer(media_items("iii"), PlaybackMode.SEQUENTIAL, loop=False)
        seq.move_to(2)
        assert seq.advance() == 2
        assert not seq.can_advance()
        seq.move_to(0)
        assert seq.retreat() == 0
        assert seq.can_advance()


class TestReverse:
    def test_advance_steps_backwards(self):
        seq = PlaybackSequencer(media_items("iiii"), PlaybackMode.REVERSE, loop=True)
        assert walk(seq, 5) == [3, 2, 1, 0, 3, 2]

    def test_reset_opens_on_last_item(self):
        seq = PlaybackSequencer(media_items("iii"), PlaybackMode.SEQUENTIAL)
        seq.reset(mode=PlaybackMode.REVERSE)
        assert seq.current_index == 2

    @pytest.mark.parametrize("loop", [True, False])
    @pytest.mark.parametrize("start", [0, 1, 3])
    def test_mirrors_sequential(self, loop, start):
        forward = PlaybackSequencer(media_items("iiii"), PlaybackMode.SEQUENTIAL, loop=loop)
        reverse = PlaybackSequencer(media_items("iiii"), PlaybackMode.REVERSE, loop=loop)
        forward.move_to(start)
        reverse.move_to(start)
        assert reverse.advance() == forward.retreat()
        assert reverse.retreat() == forward.advance()

    def test_non_looping_reverse_finishes_at_first_item(self):
        seq = PlaybackSequencer(media_items("iii"), PlaybackMode.REVERSE, loop=False)
        seq.move_to(2)
        assert walk(seq, 3) == [2, 1, 0, 0]
        assert not seq.can_advance()


class TestRandom:
    @pytest.mark.parametrize("seed", range(10))
    def test_every_item_visited_once_per_cycle(self, seed):
        seq = PlaybackSequencer(media_items("iiviiv"), PlaybackMode.RANDOM, rng=random.Random(seed))
        visited = walk(seq, 17)
        # The last item of a cycle opens the next one.
        for start in (0, 5, 10):
            assert sorted(visited[start:start + 6]) == list(range(6))

    @pytest.mark.parametrize("seed", range(5))
    def test_never_repeats_back_to_back(self, seed):
        seq = PlaybackSequencer(media_items("iiii"), PlaybackMode.RANDOM, rng=random.Random(seed))
        visited = walk(seq, 30)
        assert all(a != b for a, b in zip(visited, visited[1:]))

    def test_history_stays_bounded(self):
        seq = PlaybackSequencer(media_items("iiiii"), PlaybackMode.RANDOM, rng=random.Random(1))
        for _ in range(50):
            seq.move_to(seq.advance())
            assert len(seq.played_history) <= 5

    def test_retreat_returns_previously_played(self):
        seq = PlaybackSequencer(media_items("iiiii"), PlaybackMode.RANDOM, rng=random.Random(3))
        visited = walk(seq, 3)
        seq.move_to(seq.retreat())
        assert seq.current_index == visited[2]
        seq.move_to(seq.retreat())
        assert seq.current_index == visited[1]

    def test_retreat_without_history_picks_another_item(self):
        seq = PlaybackSequencer(media_items("iii"), PlaybackMode.RANDOM, rng=random.Random(0))
        assert seq.retreat() in (1, 2)

    def test_ignores_loop_flag(self):
        seq = PlaybackSequencer(media_items("ii"), PlaybackMode.RANDOM, loop=False, rng=random.Random(0))
        for _ in range(5):
            assert seq.can_advance()
            seq.move_to(seq.advance())

    def test_single_item_stays_put(self):
        seq = PlaybackSequencer(media_items("i"), PlaybackMode.RANDOM)
        assert seq.advance() == 0
        assert seq.retreat() == 0


class TestPreload:
    def test_neighbours_that_are_images(self):
        seq = PlaybackSequencer(media_items("iviii"), PlaybackMode.SEQUENTIAL)
        seq.move_to(2)
        assert seq.next_preload_index() == 3
        assert seq.previous_preload_index() is None

    def test_follows_reverse_direction(self):
        seq = PlaybackSequencer(media_items("iiiv"), PlaybackMode.REVERSE)
        seq.move_to(1)
        assert seq.next_preload_index() == 0
        assert seq.previous_preload_index() == 2

    def test_none_at_non_looping_end(self):
        seq = PlaybackSequencer(media_items("ii"), PlaybackMode.SEQUENTIAL, loop=False)
        seq.move_to(1)
        assert seq.next_preload_index() is None

    def test_none_in_random_mode(self):
        seq = PlaybackSequencer(media_items("iiii"), PlaybackMode.RANDOM, rng=random.Random(0))
        assert seq.next_preload_index() is None
        assert seq.previous_preload_index() is None
        assert seq.played_history == []


class TestState:
    def test_empty_playlist_is_inert(self):
        seq = PlaybackSequencer([], PlaybackMode.SEQUENTIAL)
        assert seq.advance() == 0
        assert seq.retreat() == 0
        assert not seq.can_advance()
        seq.move_to(5)
        assert seq.current_index == 0
        assert seq.next_preload_index() is None

    def test_move_to_out_of_range(self):
        seq = PlaybackSequencer(media_items("ii"))
        with pytest.raises(IndexError):
            seq.move_to(2)
        with pytest.raises(IndexError):
            seq.move_to(-1)

    def test_reset_clears_position_and_history(self):
        seq = PlaybackSequencer(media_items("iii"), PlaybackMode.RANDOM, rng=random.Random(0))
        walk(seq, 2)
        seq.reset(media_items("iiiii"), mode="sequential", loop=False)
        assert seq.current_index == 0
        assert seq.played_history == []
        assert seq.mode is PlaybackMode.SEQUENTIAL
        assert len(seq) == 5
        assert not seq.loop
