"""
What the engine needs from the bus.

Anything that can make method calls on a player, read its properties and
deliver its signals in order can drive an ``EventEngine``.  The D-Bus
implementation lives in ``mprisevents.dbus``.
"""

import logging
import queue

from typing import Any, Dict, NamedTuple, Optional, Protocol, Tuple


_LOGGER = logging.getLogger(__name__)

IFACE_ROOT = "org.mpris.MediaPlayer2"
IFACE_PLAYER = "org.mpris.MediaPlayer2.Player"
IFACE_TRACKLIST = "org.mpris.MediaPlayer2.TrackList"
IFACE_PROPERTIES = "org.freedesktop.DBus.Properties"

SIGNAL_PROPERTIES_CHANGED = "PropertiesChanged"
SIGNAL_SEEKED = "Seeked"
SIGNAL_NAME_OWNER_CHANGED = "NameOwnerChanged"
TRACKLIST_SIGNALS = (
    "TrackListReplaced",
    "TrackAdded",
    "TrackRemoved",
    "TrackMetadataChanged",
)
ENGINE_SIGNALS = (
    SIGNAL_PROPERTIES_CHANGED,
    SIGNAL_SEEKED,
    SIGNAL_NAME_OWNER_CHANGED,
) + TRACKLIST_SIGNALS


class RawSignal(NamedTuple):
    name: str
    args: Tuple[Any, ...]


class Subscription(object):
    """
    A channel of raw signals, in the order the bus delivered them.

    Producers call ``put``; the single consumer calls ``get``.  ``close``
    runs the disconnection callback once and discards anything pending.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._queue: "queue.Queue[RawSignal]" = queue.Queue()
        self._closers: list = []
        self.closed = False

    def __repr__(self) -> str:
        return "<Subscription %s%s>" % (self.name, " closed" if self.closed else "")

    def on_close(self, func: Any) -> None:
        self._closers.append(func)

    def put(self, signal: RawSignal) -> None:
        if not self.closed:
            self._queue.put(signal)

    def get(self, timeout: Optional[float]) -> Optional[RawSignal]:
        """Returns the next signal, or None if ``timeout`` elapsed first."""
        if self.closed:
            return None
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        while self._closers:
            closer = self._closers.pop()
            try:
                closer()
            except Exception:
                _LOGGER.exception("Error closing %s", self)


class Transport(Protocol):
    def call(self, method: str, *args: Any) -> Any:
        ...

    def read_property(self, name: str) -> Any:
        ...

    def read_all(self) -> Dict[str, Any]:
        ...

    def subscribe(self, *signals: str) -> Subscription:
        ...
