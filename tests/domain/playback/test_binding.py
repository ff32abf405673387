"""Tests for the per-observer session binding."""

import pytest

from wavify.domain.playback.binding import SessionBinding
from wavify.domain.playback.engine import PlaybackEngine
from wavify.domain.playback.state import RepeatMode, format_time, sanitize_seconds


@pytest.fixture
def engine(media) -> PlaybackEngine:
    return PlaybackEngine(media)


def test_binding_tracks_renders_and_state(engine, make_songs):
    changes = []
    binding = SessionBinding(engine, on_change=changes.append)

    binding.set_queue(make_songs(3), 1)
    binding.play()

    assert binding.render_count == 2
    assert binding.state.current_index == 1
    assert binding.state.is_playing is True
    assert changes[-1] == binding.state


def test_bindings_share_one_session(engine, make_songs):
    player_bar = SessionBinding(engine)
    queue_view = SessionBinding(engine)

    player_bar.set_queue(make_songs(3))
    queue_view.play_track_at_index(2)

    assert player_bar.state == queue_view.state
    assert player_bar.state.current_index == 2


def test_close_unsubscribes(engine, make_songs):
    with SessionBinding(engine) as binding:
        assert engine.subscriber_count == 1
        binding.set_queue(make_songs(1))

    assert not binding.attached
    assert engine.subscriber_count == 0

    engine.toggle_shuffle()
    assert binding.render_count == 1
    binding.close()


def test_passthroughs(engine, media, make_songs):
    binding = SessionBinding(engine)
    binding.set_queue(make_songs(3))

    assert binding.next() is True
    assert binding.prev() is True
    binding.toggle_play()
    binding.pause()
    binding.set_volume(0.1)
    binding.toggle_shuffle()
    binding.cycle_repeat()
    media.duration = 100.0
    binding.seek_to(0.5)

    state = binding.state
    assert state.volume == 0.1
    assert state.shuffle is True
    assert state.repeat == RepeatMode.ALL
    assert state.is_playing is False
    assert media.current_time == 50.0


def test_initial_state_before_any_change(engine):
    binding = SessionBinding(engine)
    assert binding.render_count == 0
    assert binding.state.current_index is None


class TestStateHelpers:
    @pytest.mark.parametrize(
        "value,expected",
        [(None, 0.0), (float("nan"), 0.0), (float("inf"), 0.0), (-1, 0.0), ("x", 0.0), (12.5, 12.5)],
    )
    def test_sanitize_seconds(self, value, expected):
        assert sanitize_seconds(value) == expected

    def test_format_time(self):
        assert format_time(0) == "0:00"
        assert format_time(65.9) == "1:05"
        assert format_time(-5) == "0:00"

    def test_repeat_cycle_wraps(self):
        assert RepeatMode.ONE.cycled() is RepeatMode.OFF
