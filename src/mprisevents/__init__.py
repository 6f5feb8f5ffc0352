from mprisevents.config import Settings, load_settings
from mprisevents.engine import EngineState, EventEngine
from mprisevents.errors import (
    ConfigError,
    DecodeError,
    ErrorKind,
    FieldTypeError,
    PeerGone,
    PropertyMissing,
    TransportError,
)
from mprisevents.events import (
    Error,
    Event,
    LoopStatusChanged,
    PlaybackRateChanged,
    PlaybackStatusChanged,
    PlayerQuit,
    Seeked,
    ShuffleChanged,
    TrackChanged,
    TrackListChanged,
    VolumeChanged,
)
from mprisevents.metadata import Metadata, TrackId, translate
from mprisevents.position import PlaybackStatus, PositionAnchor, position_at
from mprisevents.state import LoopStatus, PlayerState

__all__ = [
    "ConfigError",
    "DecodeError",
    "EngineState",
    "Error",
    "ErrorKind",
    "Event",
    "EventEngine",
    "FieldTypeError",
    "LoopStatus",
    "LoopStatusChanged",
    "Metadata",
    "PeerGone",
    "PlaybackRateChanged",
    "PlaybackStatus",
    "PlaybackStatusChanged",
    "PlayerQuit",
    "PlayerState",
    "PositionAnchor",
    "PropertyMissing",
    "Seeked",
    "Settings",
    "ShuffleChanged",
    "TrackChanged",
    "TrackId",
    "TrackListChanged",
    "TransportError",
    "VolumeChanged",
    "load_settings",
    "position_at",
    "translate",
]
