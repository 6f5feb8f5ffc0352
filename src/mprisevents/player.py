import logging

from datetime import timedelta
from typing import Any, Dict, List, Optional

from mprisevents.config import Settings
from mprisevents.dbus import MPRIS_PREFIX, DBusTransport, MPRISBus
from mprisevents.engine import EventEngine
from mprisevents.errors import PropertyMissing
from mprisevents.metadata import Metadata, translate, usec
from mprisevents.position import PlaybackStatus, clamp_rate
from mprisevents.state import (
    PROP_LOOPSTATUS,
    PROP_METADATA,
    PROP_PLAYBACKSTATUS,
    PROP_POSITION,
    PROP_RATE,
    PROP_SHUFFLE,
    PROP_VOLUME,
    LoopStatus,
)


_LOGGER = logging.getLogger(__name__)


class Player(object):
    """
    One MPRIS player on the bus.

    Commands go straight to the player.  For a view of what it is doing,
    iterate over ``events()``.
    """

    def __str__(self) -> str:
        return "<Player %s at %s>" % (self.identity, self.bus_name)

    def __init__(
        self,
        bus: MPRISBus,
        bus_name: str,
        settings: Optional[Settings] = None,
    ) -> None:
        _LOGGER.debug("Discovering player %s", bus_name)
        self.bus_name = bus_name
        self.settings = settings if settings is not None else Settings()
        self.transport: DBusTransport = bus.transport(bus_name, self.settings)
        try:
            entity_props = self.transport.read_identity()
        except PropertyMissing:
            entity_props = {}
        self.identity: str = entity_props.get(
            "Identity",
            entity_props.get("DesktopEntry", bus_name),
        )
        _LOGGER.info("Player with bus ID %s has identity %s", bus_name, self.identity)

    def cleanup(self) -> None:
        if hasattr(self, "transport"):
            self.transport.close()
            delattr(self, "transport")

    def events(self) -> EventEngine:
        return EventEngine(self.transport, self.settings, name=self.identity)

    def play(self) -> None:
        self.transport.call("Play")

    def pause(self) -> None:
        self.transport.call("Pause")

    def play_pause(self) -> None:
        self.transport.call("PlayPause")

    def stop(self) -> None:
        self.transport.call("Stop")

    def next(self) -> None:
        self.transport.call("Next")

    def previous(self) -> None:
        self.transport.call("Previous")

    def seek(self, offset: float) -> None:
        """Causes the player to seek forward or backward <offset> seconds."""
        self.transport.call("Seek", round(offset * 1000 * 1000))

    def set_position(self, track_id: str, position: float) -> None:
        """Causes the player to go to <position> seconds in track <track_id>."""
        self.transport.call("SetPosition", track_id, round(position * 1000 * 1000))

    def get_playback_status(self) -> PlaybackStatus:
        return PlaybackStatus(self.transport.read_property(PROP_PLAYBACKSTATUS))

    def get_loop_status(self) -> LoopStatus:
        return LoopStatus(self.transport.read_property(PROP_LOOPSTATUS))

    def set_loop_status(self, loop_status: LoopStatus) -> None:
        self.transport.write_property(PROP_LOOPSTATUS, loop_status.value)

    def get_shuffle(self) -> bool:
        return bool(self.transport.read_property(PROP_SHUFFLE))

    def set_shuffle(self, shuffle: bool) -> None:
        self.transport.write_property(PROP_SHUFFLE, shuffle)

    def get_volume(self) -> float:
        return float(self.transport.read_property(PROP_VOLUME))

    def set_volume(self, volume: float) -> None:
        self.transport.write_property(PROP_VOLUME, float(volume))

    def get_rate(self) -> float:
        return clamp_rate(self.transport.read_property(PROP_RATE))

    def set_rate(self, rate: float) -> None:
        self.transport.write_property(PROP_RATE, float(rate))

    def get_position(self) -> timedelta:
        return timedelta(microseconds=self.transport.read_property(PROP_POSITION))

    def get_metadata(self) -> Metadata:
        return translate(self.transport.read_property(PROP_METADATA))

    def go_to_start(self) -> None:
        md = self.get_metadata()
        if md.track_id is None:
            raise ValueError("%s is not playing a track with an ID" % self)
        self.set_position(md.track_id, 0)

    def properties(self) -> Dict[str, Any]:
        return self.transport.read_all()


def find_player(bus: MPRISBus, name: str) -> str:
    """
    Resolves ``name`` to a bus name.  Accepts full bus names as well as
    their suffix after the MPRIS prefix (``vlc`` for
    ``org.mpris.MediaPlayer2.vlc``, or any instance of it).
    """
    names = bus.list_player_names()
    if name in names:
        return name
    full = MPRIS_PREFIX + name
    candidates: List[str] = [
        n for n in names if n == full or n.startswith(full + ".")
    ]
    if not candidates:
        raise KeyError(name)
    return candidates[0]


def position_seconds(d: timedelta) -> float:
    return usec(d) / 1000 / 1000
