import dataclasses
import enum
import logging
import math

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from mprisevents.metadata import Metadata, translate
from mprisevents.position import (
    PlaybackStatus,
    PositionAnchor,
    clamp_rate,
    position_at,
    rebase,
)


_LOGGER = logging.getLogger(__name__)

PROP_PLAYBACKSTATUS = "PlaybackStatus"
PROP_LOOPSTATUS = "LoopStatus"
PROP_SHUFFLE = "Shuffle"
PROP_VOLUME = "Volume"
PROP_RATE = "Rate"
PROP_POSITION = "Position"
PROP_METADATA = "Metadata"

# Values assumed for properties a player does not implement.
DEFAULTS: Dict[str, Any] = {
    PROP_PLAYBACKSTATUS: PlaybackStatus.STOPPED.value,
    PROP_LOOPSTATUS: "None",
    PROP_SHUFFLE: False,
    PROP_VOLUME: 1.0,
    PROP_RATE: 1.0,
    PROP_POSITION: 0,
    PROP_METADATA: lambda: dict(),
}


class LoopStatus(enum.Enum):
    NONE = "None"
    TRACK = "Track"
    PLAYLIST = "Playlist"


def _enum(cls: Any, prop: str, value: Any, current: Any) -> Any:
    try:
        return cls(value)
    except ValueError:
        _LOGGER.warning("%s cannot be %r, keeping %s", prop, value, current)
        return current


def _number(prop: str, value: Any, current: Any) -> Any:
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
    ):
        _LOGGER.warning("%s cannot be %r, keeping %s", prop, value, current)
        return current
    return float(value)


def _shuffle(value: Any, current: bool) -> bool:
    # Some players (VLC among them) declare Shuffle as a double.
    if isinstance(value, (bool, int, float)):
        return bool(value)
    _LOGGER.warning("%s cannot be %r, keeping %s", PROP_SHUFFLE, value, current)
    return current


def _position(value: Any) -> Optional[timedelta]:
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
    ):
        _LOGGER.warning("%s cannot be %r, ignoring it", PROP_POSITION, value)
        return None
    try:
        position = timedelta(microseconds=int(value))
    except OverflowError:
        _LOGGER.warning("%s %r is out of range, ignoring it", PROP_POSITION, value)
        return None
    return max(timedelta(0), position)


def is_new_track(old: Metadata, new: Metadata) -> bool:
    return new.track_id is not None and new.track_id != old.track_id


@dataclass(frozen=True)
class PlayerState:
    status: PlaybackStatus
    anchor: PositionAnchor
    metadata: Metadata
    volume: float
    loop_status: LoopStatus
    shuffle: bool
    track_length: Optional[timedelta] = None

    @property
    def rate(self) -> float:
        return self.anchor.rate

    def position_at(self, now: float) -> timedelta:
        return position_at(self.anchor, self.status, self.track_length, now)

    @classmethod
    def from_properties(
        cls,
        props: Dict[str, Any],
        now: float,
        previous: Optional["PlayerState"] = None,
    ) -> "PlayerState":
        """
        Builds a state out of a full property pull.

        Properties missing from ``props`` take their protocol defaults,
        except ``Position`` on a pull following ``previous``: a player that
        does not report it keeps being interpolated from the old anchor.
        """
        full = {}
        for prop, defval in DEFAULTS.items():
            if prop in props:
                full[prop] = props[prop]
            elif prop == PROP_POSITION and previous is not None:
                continue
            else:
                full[prop] = defval() if callable(defval) else defval
        if previous is not None:
            return previous.apply(full, now)
        base = cls(
            status=PlaybackStatus.STOPPED,
            anchor=PositionAnchor(
                position=timedelta(0),
                rate=1.0,
                captured_at=now,
            ),
            metadata=Metadata(),
            volume=1.0,
            loop_status=LoopStatus.NONE,
            shuffle=False,
        )
        return base.apply(full, now)

    def apply(
        self,
        props: Dict[str, Any],
        now: float,
        seeked_to: Optional[timedelta] = None,
    ) -> "PlayerState":
        """
        Returns a new state with changed properties and an optional seek
        folded in.  This state is left untouched.
        """
        status = self.status
        if PROP_PLAYBACKSTATUS in props:
            status = _enum(
                PlaybackStatus,
                PROP_PLAYBACKSTATUS,
                props[PROP_PLAYBACKSTATUS],
                self.status,
            )
        loop_status = self.loop_status
        if PROP_LOOPSTATUS in props:
            loop_status = _enum(
                LoopStatus,
                PROP_LOOPSTATUS,
                props[PROP_LOOPSTATUS],
                self.loop_status,
            )
        shuffle = self.shuffle
        if PROP_SHUFFLE in props:
            shuffle = _shuffle(props[PROP_SHUFFLE], self.shuffle)
        volume = self.volume
        if PROP_VOLUME in props:
            volume = _number(PROP_VOLUME, props[PROP_VOLUME], self.volume)
        rate = self.anchor.rate
        if PROP_RATE in props:
            rate = clamp_rate(props[PROP_RATE])
        metadata = self.metadata
        track_length = self.track_length
        if PROP_METADATA in props:
            metadata = translate(props[PROP_METADATA])
            track_length = metadata.length

        position = None
        if PROP_POSITION in props:
            position = _position(props[PROP_POSITION])
        if seeked_to is not None:
            position = max(timedelta(0), seeked_to)
        if position is None and is_new_track(self.metadata, metadata):
            position = timedelta(0)

        anchor = self.anchor
        if (
            position is not None
            or status != self.status
            or rate != self.anchor.rate
        ):
            anchor = rebase(
                self.anchor,
                self.status,
                now,
                position=position,
                rate=rate,
                track_length=self.track_length,
            )

        return dataclasses.replace(
            self,
            status=status,
            anchor=anchor,
            metadata=metadata,
            volume=volume,
            loop_status=loop_status,
            shuffle=shuffle,
            track_length=track_length,
        )
