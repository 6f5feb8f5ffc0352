import math

from datetime import timedelta

from conftest import playing_props
from mprisevents.position import PlaybackStatus
from mprisevents.state import LoopStatus, PlayerState


T0 = 1000.0


def test_from_properties() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    assert s.status == PlaybackStatus.PLAYING
    assert s.loop_status == LoopStatus.NONE
    assert s.shuffle is False
    assert s.volume == 0.5
    assert s.rate == 1.0
    assert s.anchor.position == timedelta(seconds=10)
    assert s.anchor.captured_at == T0
    assert s.metadata.title == "Blue in Green"
    assert s.track_length == timedelta(seconds=337)


def test_missing_properties_take_defaults() -> None:
    s = PlayerState.from_properties({"PlaybackStatus": "Paused"}, T0)
    assert s.status == PlaybackStatus.PAUSED
    assert s.loop_status == LoopStatus.NONE
    assert s.volume == 1.0
    assert s.rate == 1.0
    assert s.anchor.position == timedelta(0)
    assert s.metadata.is_empty()
    assert s.track_length is None


def test_apply_leaves_original_alone() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    s2 = s.apply({"Volume": 0.9, "LoopStatus": "Playlist"}, T0 + 1)
    assert s.volume == 0.5
    assert s2.volume == 0.9
    assert s2.loop_status == LoopStatus.PLAYLIST


def test_pause_freezes_interpolated_position() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    paused = s.apply({"PlaybackStatus": "Paused"}, T0 + 4)
    assert paused.anchor.position == timedelta(seconds=14)
    assert paused.position_at(T0 + 100) == timedelta(seconds=14)


def test_rate_change_rebases() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    fast = s.apply({"Rate": 2.0}, T0 + 2)
    assert fast.anchor.position == timedelta(seconds=12)
    assert fast.position_at(T0 + 3) == timedelta(seconds=14)


def test_bad_rate_stalls() -> None:
    s = PlayerState.from_properties(playing_props(Rate=-1.0), T0)
    assert s.rate == 0.0
    assert s.position_at(T0 + 10) == timedelta(seconds=10)
    s = s.apply({"Rate": math.nan}, T0 + 1)
    assert s.rate == 0.0


def test_new_track_restarts_position() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    s2 = s.apply({"Metadata": {"mpris:trackid": "/t/2", "mpris:length": 1_000_000}}, T0 + 5)
    assert s2.anchor.position == timedelta(0)
    assert s2.track_length == timedelta(seconds=1)


def test_metadata_update_without_new_track_keeps_position() -> None:
    s = PlayerState.from_properties(playing_props(Metadata={"xesam:title": "a"}), T0)
    s2 = s.apply({"Metadata": {"xesam:title": "b"}}, T0 + 5)
    assert s2.position_at(T0 + 5) == timedelta(seconds=15)


def test_seek_rebases() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    s2 = s.apply({}, T0 + 5, seeked_to=timedelta(seconds=100))
    assert s2.anchor.position == timedelta(seconds=100)
    assert s2.anchor.captured_at == T0 + 5


def test_invalid_values_keep_previous() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    s2 = s.apply(
        {
            "PlaybackStatus": "Dancing",
            "LoopStatus": 3,
            "Volume": "loud",
            "Shuffle": "maybe",
        },
        T0 + 1,
    )
    assert s2 == s


def test_numeric_shuffle() -> None:
    s = PlayerState.from_properties(playing_props(Shuffle=1.0), T0)
    assert s.shuffle is True


def test_anchor_clock_never_goes_backwards() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    s2 = PlayerState.from_properties(playing_props(), T0 - 50, previous=s)
    assert s2.anchor.captured_at == T0


def test_out_of_range_values_are_ignored() -> None:
    s = PlayerState.from_properties(playing_props(), T0)
    s2 = s.apply({"Position": 10**30, "Metadata": {"mpris:length": 1e30}}, T0)
    assert s2.anchor == s.anchor
    assert s2.track_length is None
    s3 = s.apply({"Position": 1e30}, T0 + 1)
    assert s3.anchor == s.anchor


def test_pull_without_position_keeps_interpolating() -> None:
    props = playing_props()
    del props["Position"]
    s = PlayerState.from_properties(props, T0)
    assert s.anchor.position == timedelta(0)
    s2 = PlayerState.from_properties(props, T0 + 30, previous=s)
    assert s2.anchor == s.anchor
    assert s2.position_at(T0 + 30) == timedelta(seconds=30)
