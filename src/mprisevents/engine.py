"""
Reconciles the signals of one MPRIS player into an ordered event stream.

Players tell us about changes through ``PropertiesChanged`` and ``Seeked``
signals, but plenty of them forget to (or never do).  The engine therefore
waits for signals only up to an idle timeout; when the timeout fires it pulls
the complete player state and works out by itself what changed.  Either way
the cached ``PlayerState`` is replaced as a whole before any event derived
from the change is handed out, so the consumer never sees a half-applied
batch.
"""

import collections
import enum
import logging
import time

from datetime import timedelta
from typing import Any, Callable, Deque, List, Optional

from mprisevents.config import Settings
from mprisevents.errors import ErrorKind, PeerGone, TransportError
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
from mprisevents.position import PlaybackStatus
from mprisevents.signals import decode
from mprisevents.state import PROP_PLAYBACKSTATUS, PROP_POSITION, PlayerState
from mprisevents.transport import ENGINE_SIGNALS, RawSignal, Transport


_LOGGER = logging.getLogger(__name__)


class EngineState(enum.Enum):
    ACTIVE = "active"
    DRAINING = "draining"
    CLOSED = "closed"


def diff(old: PlayerState, new: PlayerState) -> List[Event]:
    """Lists one event per changed facet, in a fixed order."""
    events: List[Event] = []
    if new.status != old.status:
        events.append(PlaybackStatusChanged(new.status))
    if new.loop_status != old.loop_status:
        events.append(LoopStatusChanged(new.loop_status))
    if new.shuffle != old.shuffle:
        events.append(ShuffleChanged(new.shuffle))
    if new.volume != old.volume:
        events.append(VolumeChanged(new.volume))
    if new.rate != old.rate:
        events.append(PlaybackRateChanged(new.rate))
    if new.metadata != old.metadata:
        events.append(TrackChanged(new.metadata))
    return events


class EventEngine(object):
    """
    Iterator over the events of one player.

    Creating the engine subscribes to the player's signals and pulls its
    complete state once; that pull failing raises ``PeerGone`` or
    ``TransportError``.  Each ``next()`` blocks until there is something to
    report.  Iteration ends after ``PlayerQuit``, after too many consecutive
    transport errors, or once the engine is closed.
    """

    engine_state = EngineState.CLOSED
    subscription: Any = None

    def __init__(
        self,
        transport: Transport,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "",
    ) -> None:
        self.transport = transport
        self.settings = settings if settings is not None else Settings()
        self.clock = clock
        self.name = name or str(transport)
        self._buffer: Deque[Event] = collections.deque()
        self._consecutive_errors = 0

        self.subscription = transport.subscribe(*ENGINE_SIGNALS)
        try:
            self.state = self._pull(None)
        except Exception:
            self.subscription.close()
            raise
        self.engine_state = EngineState.ACTIVE
        _LOGGER.debug("%s: engine started in state %s", self.name, self.state)

    def __repr__(self) -> str:
        return "<EventEngine %s %s>" % (self.name, self.engine_state.value)

    def __iter__(self) -> "EventEngine":
        return self

    def __next__(self) -> Event:
        while not self._buffer:
            if self.engine_state == EngineState.DRAINING:
                _LOGGER.debug("%s: drained, closing", self.name)
                self.engine_state = EngineState.CLOSED
            if self.engine_state == EngineState.CLOSED:
                raise StopIteration
            self._wake()
        return self._buffer.popleft()

    def __enter__(self) -> "EventEngine":
        return self

    def __exit__(self, *unused_exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()

    def close(self) -> None:
        """Stops the stream and unsubscribes.  Safe to call repeatedly."""
        if self.engine_state != EngineState.CLOSED:
            _LOGGER.debug("%s: closing engine", self.name)
        self.engine_state = EngineState.CLOSED
        if hasattr(self, "_buffer"):
            self._buffer.clear()
        if self.subscription is not None:
            self.subscription.close()

    def position(self, now: Optional[float] = None) -> timedelta:
        """Interpolated playback position as a timedelta."""
        return self.state.position_at(self.clock() if now is None else now)

    def _pull(self, previous: Optional[PlayerState]) -> PlayerState:
        props = self.transport.read_all()
        if not isinstance(props, dict):
            raise TransportError(
                "Player properties are not a mapping: %r" % (props,),
                ErrorKind.BAD_REPLY,
            )
        if PROP_PLAYBACKSTATUS not in props:
            raise TransportError(
                "Player properties do not contain PlaybackStatus",
                ErrorKind.BAD_REPLY,
            )
        return PlayerState.from_properties(props, self.clock(), previous)

    def _wake(self) -> None:
        signal = self.subscription.get(timeout=self.settings.idle_timeout)
        try:
            if signal is None:
                self._fallback_pull()
            else:
                self._handle_signal(signal)
        except PeerGone as e:
            self._drain(str(e))
            return
        except TransportError as e:
            self._transport_failed(e)
            return
        self._consecutive_errors = 0

    def _handle_signal(self, signal: RawSignal) -> None:
        change = decode(signal, self.transport)
        if change is None:
            return
        if change.peer_gone:
            self._drain("player left the bus")
            return

        old = self.state
        new = old.apply(change.properties, self.clock(), seeked_to=change.seeked_to)
        self.state = new

        events: List[Event] = []
        if change.seeked_to is not None:
            events.append(Seeked(new.anchor.position))
        elif PROP_POSITION in change.properties:
            seek = self._detect_seek(old, new)
            if seek is not None:
                events.append(seek)
        events.extend(diff(old, new))
        if change.tracklist_changed:
            events.append(TrackListChanged())
        if events:
            _LOGGER.debug("%s: %s -> %s", self.name, signal.name, events)
        self._buffer.extend(events)

    def _fallback_pull(self) -> None:
        _LOGGER.debug("%s: no signals for a while, pulling state", self.name)
        old = self.state
        new = self._pull(old)
        self.state = new

        events: List[Event] = []
        seek = self._detect_seek(old, new)
        if seek is not None:
            events.append(seek)
        events.extend(diff(old, new))
        if events:
            _LOGGER.debug("%s: pull found %s", self.name, events)
        self._buffer.extend(events)

    def _detect_seek(self, old: PlayerState, new: PlayerState) -> Optional[Seeked]:
        """
        Reports a seek when a freshly read position disagrees with where
        the old anchor says playback should be.  Status and track changes
        move the position on their own and are not seeks.
        """
        if new.status != old.status or new.metadata != old.metadata:
            return None
        if new.status == PlaybackStatus.STOPPED:
            return None
        expected = old.position_at(new.anchor.captured_at)
        drift = abs((new.anchor.position - expected).total_seconds())
        if drift <= self.settings.seek_tolerance:
            return None
        _LOGGER.debug(
            "%s: seeked, at %.2f, predicted %.2f at rate %s",
            self.name,
            new.anchor.position.total_seconds(),
            expected.total_seconds(),
            new.rate,
        )
        return Seeked(new.anchor.position)

    def _drain(self, reason: str) -> None:
        _LOGGER.info("%s: player is gone (%s)", self.name, reason)
        self.engine_state = EngineState.DRAINING
        self._buffer.append(PlayerQuit())
        self.subscription.close()

    def _transport_failed(self, e: TransportError) -> None:
        self._consecutive_errors += 1
        _LOGGER.warning(
            "%s: transport error %d/%d: %s",
            self.name,
            self._consecutive_errors,
            self.settings.max_consecutive_errors,
            e,
        )
        self._buffer.append(Error(e.kind, str(e)))
        if self._consecutive_errors >= self.settings.max_consecutive_errors:
            _LOGGER.error("%s: player unreachable, giving up", self.name)
            self.engine_state = EngineState.CLOSED
            self.subscription.close()
