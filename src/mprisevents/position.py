import enum
import logging
import math

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional


_LOGGER = logging.getLogger(__name__)


class PlaybackStatus(enum.Enum):
    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"


@dataclass(frozen=True)
class PositionAnchor:
    position: timedelta
    rate: float
    # Seconds on the monotonic clock.
    captured_at: float


def clamp_rate(value: Any) -> float:
    """Rates that are negative, NaN or not numbers at all stall playback."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        _LOGGER.warning("Rate %r is not a number, treating it as 0", value)
        return 0.0
    rate = float(value)
    if not math.isfinite(rate) or rate < 0:
        _LOGGER.warning("Rate %r is invalid, treating it as 0", value)
        return 0.0
    return rate


def position_at(
    anchor: PositionAnchor,
    status: PlaybackStatus,
    track_length: Optional[timedelta],
    query_time: float,
) -> timedelta:
    if status != PlaybackStatus.PLAYING:
        return anchor.position
    advance = max(0.0, query_time - anchor.captured_at) * anchor.rate
    limit = track_length if track_length is not None else timedelta.max
    # Clamp in float seconds first; a large rate overflows timedelta.
    if anchor.position.total_seconds() + advance >= limit.total_seconds():
        return limit
    try:
        estimated = anchor.position + timedelta(seconds=advance)
    except OverflowError:
        return limit
    if estimated < timedelta(0):
        return timedelta(0)
    return min(estimated, limit)


def rebase(
    anchor: PositionAnchor,
    status: PlaybackStatus,
    now: float,
    position: Optional[timedelta] = None,
    rate: Optional[float] = None,
    track_length: Optional[timedelta] = None,
) -> PositionAnchor:
    """
    Returns a new anchor captured at ``now``.

    Without an authoritative ``position`` the estimate at ``now`` (under the
    old status and rate) is carried over, so that changing status or rate
    does not make the interpolated position jump.
    """
    captured_at = max(now, anchor.captured_at)
    if position is None:
        position = position_at(anchor, status, track_length, captured_at)
    return PositionAnchor(
        position=position,
        rate=anchor.rate if rate is None else rate,
        captured_at=captured_at,
    )
