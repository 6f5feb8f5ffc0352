"""
D-Bus transport for MPRIS players, built on dasbus.

``MPRISBus`` owns the session bus connection and runs the GLib main loop on
a daemon thread, so that signal handlers fire no matter which thread the
engines are consumed from.  Signal handlers only ever unpack the payload and
put it into the subscription's queue.
"""

import contextlib
import logging
import threading

from typing import Any, Callable, Dict, Generator, List, Optional, Tuple, cast

from dasbus.client.proxy import InterfaceProxy, disconnect_proxy
from dasbus.connection import SessionMessageBus
from dasbus.error import DBusError
from dasbus.loop import EventLoop
from dasbus.typing import get_native

from mprisevents.config import Settings
from mprisevents.errors import ErrorKind, PeerGone, PropertyMissing, TransportError
from mprisevents.transport import (
    IFACE_PLAYER,
    IFACE_PROPERTIES,
    IFACE_ROOT,
    IFACE_TRACKLIST,
    SIGNAL_NAME_OWNER_CHANGED,
    SIGNAL_PROPERTIES_CHANGED,
    SIGNAL_SEEKED,
    TRACKLIST_SIGNALS,
    RawSignal,
    Subscription,
)

import gi

gi.require_version("GLib", "2.0")
from gi.repository import GLib  # noqa: E402


_LOGGER = logging.getLogger(__name__)

MPRIS_PREFIX = "org.mpris.MediaPlayer2."
OBJECT_PATH = "/org/mpris/MediaPlayer2"

PEER_GONE_ERRORS = {
    "org.freedesktop.DBus.Error.ServiceUnknown",
    "org.freedesktop.DBus.Error.NameHasNoOwner",
    "org.freedesktop.DBus.Error.UnknownObject",
}
TIMEOUT_ERRORS = {
    "org.freedesktop.DBus.Error.NoReply",
    "org.freedesktop.DBus.Error.Timeout",
    "org.freedesktop.DBus.Error.TimedOut",
}
MISSING_ERRORS = {
    "org.freedesktop.DBus.Error.InvalidArgs",
    "org.freedesktop.DBus.Error.UnknownProperty",
    "org.freedesktop.DBus.Error.UnknownMethod",
    "org.freedesktop.DBus.Error.NotSupported",
}


def unpack(obj: Any) -> Any:
    if isinstance(obj, GLib.Variant):
        obj = get_native(obj)
    if isinstance(obj, dict):
        obj = dict((unpack(k), unpack(v)) for k, v in obj.items())
    elif isinstance(obj, (list, tuple)):
        obj = [unpack(k) for k in obj]
    return obj


def is_mpris(bus_name: str) -> bool:
    return bus_name.startswith(MPRIS_PREFIX)


def translate_error(e: Exception, what: str) -> TransportError:
    """Maps dasbus and GLib failures onto our transport errors."""
    if isinstance(e, DBusError):
        name = getattr(e, "dbus_name", None)
        if name in PEER_GONE_ERRORS:
            return PeerGone("%s: %s" % (what, e))
        if name in MISSING_ERRORS:
            return PropertyMissing("%s: %s" % (what, e))
        if name in TIMEOUT_ERRORS:
            return TransportError("%s: %s" % (what, e), ErrorKind.TIMEOUT)
        return TransportError("%s: %s" % (what, e))
    if isinstance(e, GLib.GError):
        if e.code == 24 and e.domain == "g-io-error-quark":
            return TransportError("%s: timed out" % what, ErrorKind.TIMEOUT)
        return TransportError("%s: %s" % (what, e))
    return TransportError("%s: %s" % (what, e), ErrorKind.BAD_REPLY)


@contextlib.contextmanager
def translated_errors(what: str) -> Generator[None, None, None]:
    try:
        yield
    except (DBusError, GLib.GError) as e:
        raise translate_error(e, what) from e


class DBusTransport(object):
    """
    Transport for one player, identified by its bus name.

    Well-known names (``org.mpris.MediaPlayer2.vlc``) and unique names
    (``:1.42``) both work; departure is detected for whichever was given.
    """

    def __init__(
        self,
        bus: SessionMessageBus,
        daemon_proxy: Any,
        bus_name: str,
        settings: Optional[Settings] = None,
    ) -> None:
        self.bus_name = bus_name
        self.settings = settings if settings is not None else Settings()
        self._daemon_proxy = daemon_proxy
        self._timeout = int(self.settings.call_timeout * 1000)
        self._properties = cast(
            InterfaceProxy,
            bus.get_proxy(bus_name, OBJECT_PATH, interface_name=IFACE_PROPERTIES),
        )
        self._player = cast(
            InterfaceProxy,
            bus.get_proxy(bus_name, OBJECT_PATH, interface_name=IFACE_PLAYER),
        )
        self._tracklist = cast(
            InterfaceProxy,
            bus.get_proxy(bus_name, OBJECT_PATH, interface_name=IFACE_TRACKLIST),
        )

    def __str__(self) -> str:
        return self.bus_name

    def call(self, method: str, *args: Any) -> Any:
        with translated_errors("%s.%s" % (self.bus_name, method)):
            return unpack(getattr(self._player, method)(*args, timeout=self._timeout))

    def read_property(self, name: str) -> Any:
        with translated_errors("%s get %s" % (self.bus_name, name)):
            return unpack(
                self._properties.Get(IFACE_PLAYER, name, timeout=self._timeout)
            )

    def read_all(self) -> Dict[str, Any]:
        with translated_errors("%s get all properties" % self.bus_name):
            return cast(
                Dict[str, Any],
                unpack(self._properties.GetAll(IFACE_PLAYER, timeout=self._timeout)),
            )

    def read_identity(self) -> Dict[str, Any]:
        with translated_errors("%s get entity properties" % self.bus_name):
            return cast(
                Dict[str, Any],
                unpack(self._properties.GetAll(IFACE_ROOT, timeout=self._timeout)),
            )

    def write_property(self, name: str, value: Any) -> None:
        with translated_errors("%s set %s" % (self.bus_name, name)):
            setattr(self._player, name, value)

    def subscribe(self, *signals: str) -> Subscription:
        sub = Subscription(self.bus_name)

        def relay(name: str) -> Callable[..., None]:
            def handler(*args: Any) -> None:
                sub.put(RawSignal(name, tuple(unpack(a) for a in args)))

            return handler

        def owner_changed(bus_name: str, old_owner: str, new_owner: str) -> None:
            if bus_name == self.bus_name:
                sub.put(
                    RawSignal(
                        SIGNAL_NAME_OWNER_CHANGED,
                        (bus_name, old_owner, new_owner),
                    )
                )

        connections: List[Tuple[str, Any, Callable[..., None]]] = []
        for name in signals:
            if name == SIGNAL_PROPERTIES_CHANGED:
                connections.append((name, self._properties, relay(name)))
            elif name == SIGNAL_SEEKED:
                connections.append((name, self._player, relay(name)))
            elif name in TRACKLIST_SIGNALS:
                connections.append((name, self._tracklist, relay(name)))
            elif name == SIGNAL_NAME_OWNER_CHANGED:
                connections.append((name, self._daemon_proxy, owner_changed))
            else:
                _LOGGER.warning("Cannot subscribe to unknown signal %s", name)

        for name, proxy, handler in connections:
            try:
                getattr(proxy, name).connect(handler)
            except (AttributeError, DBusError) as e:
                # Not every player implements every interface.
                _LOGGER.debug("%s: not subscribing to %s: %s", self.bus_name, name, e)
                continue
            sub.on_close(self._disconnector(proxy, name, handler))
        return sub

    def _disconnector(
        self,
        proxy: Any,
        name: str,
        handler: Callable[..., None],
    ) -> Callable[[], None]:
        def disconnect() -> None:
            try:
                getattr(proxy, name).disconnect(handler)
            except (ImportError, DBusError) as exc:
                # Python or the MPRIS bus owner is shutting down.
                _LOGGER.debug("%s disconnecting %s", exc, name)

        return disconnect

    def close(self) -> None:
        for proxy in (self._properties, self._player, self._tracklist):
            try:
                disconnect_proxy(proxy)
            except (ImportError, DBusError) as exc:
                _LOGGER.debug("%s disconnecting proxy", exc)


class MPRISBus(threading.Thread):
    """The session bus plus the main loop thread that dispatches signals."""

    def __init__(self) -> None:
        threading.Thread.__init__(self)
        self.daemon = True
        self.loop = EventLoop()
        self.bus = SessionMessageBus()
        self.proxy = self.bus.get_proxy(
            "org.freedesktop.DBus",
            "/org/freedesktop/DBus",
            interface_name="org.freedesktop.DBus",
        )

    def run(self) -> None:
        _LOGGER.debug("Running main loop")
        self.loop.run()
        _LOGGER.debug("Main loop ended")

    def stop_(self) -> None:
        _LOGGER.debug("Quitting loop")
        self.loop.quit()
        if self.is_alive():
            self.join()
        self.bus.disconnect()

    def list_player_names(self) -> List[str]:
        with translated_errors("list bus names"):
            names = self.proxy.ListNames()
        return sorted(n for n in names if is_mpris(n))

    def transport(
        self,
        bus_name: str,
        settings: Optional[Settings] = None,
    ) -> DBusTransport:
        if not self.is_alive():
            self.start()
        return DBusTransport(self.bus, self.proxy, bus_name, settings)
