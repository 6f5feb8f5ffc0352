"""
Events yielded by an EventEngine.

``Event`` is a closed union; consumers can dispatch on the concrete type
and a type checker will tell them when they missed one.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Union

from mprisevents.errors import ErrorKind
from mprisevents.metadata import Metadata
from mprisevents.position import PlaybackStatus
from mprisevents.state import LoopStatus


@dataclass(frozen=True)
class PlaybackStatusChanged:
    status: PlaybackStatus


@dataclass(frozen=True)
class LoopStatusChanged:
    loop_status: LoopStatus


@dataclass(frozen=True)
class ShuffleChanged:
    shuffle: bool


@dataclass(frozen=True)
class VolumeChanged:
    volume: float


@dataclass(frozen=True)
class PlaybackRateChanged:
    rate: float


@dataclass(frozen=True)
class TrackChanged:
    metadata: Metadata


@dataclass(frozen=True)
class Seeked:
    position: timedelta


@dataclass(frozen=True)
class PlayerQuit:
    pass


@dataclass(frozen=True)
class TrackListChanged:
    pass


@dataclass(frozen=True)
class Error:
    kind: ErrorKind
    message: str


Event = Union[
    PlaybackStatusChanged,
    LoopStatusChanged,
    ShuffleChanged,
    VolumeChanged,
    PlaybackRateChanged,
    TrackChanged,
    Seeked,
    PlayerQuit,
    TrackListChanged,
    Error,
]
