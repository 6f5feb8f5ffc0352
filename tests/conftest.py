import sys
from os.path import dirname as d
from os.path import abspath, join

root_dir = d(d(abspath(__file__)))
sys.path.append(join(root_dir, "src"))

from typing import Any, Callable, Dict, List, Optional, Union  # noqa: E402

import pytest  # noqa: E402

from mprisevents.config import Settings  # noqa: E402
from mprisevents.errors import PropertyMissing  # noqa: E402
from mprisevents.transport import RawSignal, Subscription  # noqa: E402


class Exhausted(Exception):
    """The test script has no more wake-ups to hand out."""


ScriptItem = Union[RawSignal, None, Callable[[], Any]]


class FakeClock(object):
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedSubscription(Subscription):
    """
    Hands out the script one item per wait: a RawSignal is delivered, None
    stands for the idle timeout firing, and callables run in between (to
    move the clock or change the player) without counting as a wait.
    """

    def __init__(self, script: List[ScriptItem]) -> None:
        Subscription.__init__(self, "scripted")
        self.script = script
        self.waits: List[Optional[float]] = []

    def get(self, timeout: Optional[float]) -> Optional[RawSignal]:
        while self.script and callable(self.script[0]):
            self.script.pop(0)()
        if not self.script:
            raise Exhausted()
        self.waits.append(timeout)
        item = self.script.pop(0)
        return item  # type: ignore


class FakeTransport(object):
    def __init__(self, props: Optional[Dict[str, Any]] = None) -> None:
        self.props: Dict[str, Any] = dict(props or {})
        self.script: List[ScriptItem] = []
        self.failures: List[Exception] = []
        self.reads: List[str] = []
        self.calls: List[tuple] = []
        self.subscriptions: List[ScriptedSubscription] = []
        self.subscribed_to: tuple = ()

    def __str__(self) -> str:
        return "fake"

    def _maybe_fail(self) -> None:
        if self.failures:
            raise self.failures.pop(0)

    def call(self, method: str, *args: Any) -> Any:
        self._maybe_fail()
        self.calls.append((method,) + args)

    def read_property(self, name: str) -> Any:
        self._maybe_fail()
        self.reads.append(name)
        if name not in self.props:
            raise PropertyMissing(name)
        return self.props[name]

    def read_all(self) -> Dict[str, Any]:
        self._maybe_fail()
        self.reads.append("*")
        return dict(self.props)

    def subscribe(self, *signals: str) -> Subscription:
        self.subscribed_to = signals
        sub = ScriptedSubscription(self.script)
        self.subscriptions.append(sub)
        return sub


def playing_props(**kw: Any) -> Dict[str, Any]:
    props: Dict[str, Any] = {
        "PlaybackStatus": "Playing",
        "LoopStatus": "None",
        "Shuffle": False,
        "Volume": 0.5,
        "Rate": 1.0,
        "Position": 10_000_000,
        "Metadata": {
            "mpris:trackid": "/org/mpris/MediaPlayer2/Track/1",
            "xesam:title": "Blue in Green",
            "xesam:artist": ["Miles Davis"],
            "mpris:length": 337_000_000,
        },
    }
    props.update(kw)
    return props


def drain(events: Any) -> List[Any]:
    """Collects events until the stream ends or the script runs out."""
    got = []
    try:
        for e in events:
            got.append(e)
    except Exhausted:
        pass
    return got


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(playing_props())


@pytest.fixture
def settings() -> Settings:
    return Settings(idle_timeout=2.0, max_consecutive_errors=3, seek_tolerance=1.0)
