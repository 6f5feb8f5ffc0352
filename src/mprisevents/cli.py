import argparse
import logging
import sys

from typing import List, Optional

from mprisevents import config
from mprisevents.dbus import MPRISBus
from mprisevents.errors import ConfigError, TransportError
from mprisevents.events import Event, TrackChanged
from mprisevents.player import Player, find_player, position_seconds


_LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mprisevents-watch",
        description="Print the events of an MPRIS media player as they happen.",
    )
    parser.add_argument(
        "player",
        nargs="?",
        help="bus name of the player, or its suffix (e.g. vlc); "
        "lists players when omitted",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=None,
        help="seconds without signals before the player is polled",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log debug messages"
    )
    return parser.parse_args(argv)


def describe(event: Event) -> str:
    if isinstance(event, TrackChanged):
        md = event.metadata
        return "TrackChanged: %s - %s" % (
            ", ".join(md.artists or ()) or "?",
            md.title or "?",
        )
    return repr(event)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = config.load_settings()
    except ConfigError as e:
        _LOGGER.error("%s", e)
        return 2
    if args.timeout is not None:
        settings = settings.replace(idle_timeout=args.timeout)

    bus = MPRISBus()
    try:
        if not args.player:
            for name in bus.list_player_names():
                print(name)
            return 0
        try:
            bus_name = find_player(bus, args.player)
        except KeyError:
            _LOGGER.error("No player named %s on the bus", args.player)
            return 1
        player = Player(bus, bus_name, settings)
        try:
            with player.events() as events:
                for event in events:
                    print(
                        "[%8.2f] %s"
                        % (position_seconds(events.position()), describe(event))
                    )
                    sys.stdout.flush()
        except KeyboardInterrupt:
            _LOGGER.info("Interrupted, exiting.")
        finally:
            player.cleanup()
    except TransportError as e:
        _LOGGER.error("%s", e)
        return 1
    finally:
        bus.stop_()
    return 0


if __name__ == "__main__":
    sys.exit(main())
