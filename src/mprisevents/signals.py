import logging

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional

from mprisevents.errors import DecodeError
from mprisevents.transport import (
    IFACE_PLAYER,
    IFACE_TRACKLIST,
    SIGNAL_NAME_OWNER_CHANGED,
    SIGNAL_PROPERTIES_CHANGED,
    SIGNAL_SEEKED,
    TRACKLIST_SIGNALS,
    RawSignal,
    Transport,
)


_LOGGER = logging.getLogger(__name__)


@dataclass
class Change:
    properties: Dict[str, Any] = field(default_factory=dict)
    seeked_to: Optional[timedelta] = None
    tracklist_changed: bool = False
    peer_gone: bool = False

    def is_empty(self) -> bool:
        return not (
            self.properties
            or self.seeked_to is not None
            or self.tracklist_changed
            or self.peer_gone
        )


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _properties_changed(args: tuple, transport: Transport) -> Change:
    if len(args) != 3:
        raise DecodeError("PropertiesChanged takes 3 arguments, got %d" % len(args))
    iface, changed, invalidated = args
    if not isinstance(iface, str):
        raise DecodeError("interface name %r is not a string" % (iface,))
    if not isinstance(changed, dict) or not all(isinstance(k, str) for k in changed):
        raise DecodeError("changed properties %r are not a mapping" % (changed,))
    if not isinstance(invalidated, (list, tuple)) or not all(
        isinstance(k, str) for k in invalidated
    ):
        raise DecodeError("invalidated properties %r are not names" % (invalidated,))

    if iface == IFACE_TRACKLIST:
        return Change(tracklist_changed=bool(changed or invalidated))
    if iface != IFACE_PLAYER:
        _LOGGER.debug("Ignoring property changes on %s", iface)
        return Change()

    props = dict(changed)
    for name in invalidated:
        if name in props:
            continue
        # The peer told us the value changed but not what it is now.
        _LOGGER.debug("Re-reading invalidated property %s", name)
        props[name] = transport.read_property(name)
    return Change(properties=props)


def _seeked(args: tuple) -> Change:
    if len(args) != 1 or not _is_int(args[0]):
        raise DecodeError("Seeked takes one integer, got %r" % (args,))
    try:
        return Change(seeked_to=timedelta(microseconds=args[0]))
    except OverflowError:
        raise DecodeError("Seeked position %d is out of range" % args[0])


def _name_owner_changed(args: tuple) -> Change:
    if len(args) != 3 or not all(isinstance(a, str) for a in args):
        raise DecodeError("NameOwnerChanged takes 3 strings, got %r" % (args,))
    _, _, new_owner = args
    return Change(peer_gone=not new_owner)


def decode(signal: Any, transport: Transport) -> Optional[Change]:
    """
    Turns one raw signal into a Change record.

    Returns None (after logging why) when the payload cannot be made sense
    of.  Transport errors raised while re-reading invalidated properties are
    left for the caller to deal with.
    """
    try:
        if not isinstance(signal, RawSignal):
            raise DecodeError("not a signal: %r" % (signal,))
        args = tuple(signal.args)
        if signal.name == SIGNAL_PROPERTIES_CHANGED:
            return _properties_changed(args, transport)
        if signal.name == SIGNAL_SEEKED:
            return _seeked(args)
        if signal.name in TRACKLIST_SIGNALS:
            return Change(tracklist_changed=True)
        if signal.name == SIGNAL_NAME_OWNER_CHANGED:
            return _name_owner_changed(args)
        raise DecodeError("unknown signal %s" % signal.name)
    except DecodeError as e:
        _LOGGER.warning("Dropping undecodable signal: %s", e)
        return None
