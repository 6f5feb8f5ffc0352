import json
import logging
import math
import os

from typing import Any, Dict, Optional

import xdg.BaseDirectory

from mprisevents.errors import ConfigError


_LOGGER = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"

DEFAULTS: Dict[str, float] = {
    # Seconds without any signal before the player is pulled again.
    "idle_timeout": 3.0,
    "max_consecutive_errors": 3,
    # Seconds of disagreement between the interpolated and the pulled
    # position tolerated before a seek is reported.
    "seek_tolerance": 1.0,
    "call_timeout": 3.0,
}


def folder() -> str:
    return os.path.join(
        xdg.BaseDirectory.xdg_config_home,
        "mprisevents",
    )


class Settings(object):
    def __init__(
        self,
        idle_timeout: float = DEFAULTS["idle_timeout"],
        max_consecutive_errors: int = int(DEFAULTS["max_consecutive_errors"]),
        seek_tolerance: float = DEFAULTS["seek_tolerance"],
        call_timeout: float = DEFAULTS["call_timeout"],
    ) -> None:
        self.idle_timeout = _positive("idle_timeout", idle_timeout)
        self.seek_tolerance = _positive("seek_tolerance", seek_tolerance)
        self.call_timeout = _positive("call_timeout", call_timeout)
        if (
            isinstance(max_consecutive_errors, bool)
            or not isinstance(max_consecutive_errors, int)
            or max_consecutive_errors < 1
        ):
            raise ConfigError(
                "max_consecutive_errors must be a positive integer, not %r"
                % (max_consecutive_errors,)
            )
        self.max_consecutive_errors = max_consecutive_errors

    def __repr__(self) -> str:
        return (
            "<Settings idle_timeout=%s max_consecutive_errors=%s "
            "seek_tolerance=%s call_timeout=%s>"
            % (
                self.idle_timeout,
                self.max_consecutive_errors,
                self.seek_tolerance,
                self.call_timeout,
            )
        )

    def replace(self, **kw: Any) -> "Settings":
        values = {k: getattr(self, k) for k in DEFAULTS}
        values.update(kw)
        return Settings(**values)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        known = {}
        for k, v in data.items():
            if k not in DEFAULTS:
                _LOGGER.warning("Ignoring unknown setting %s", k)
                continue
            known[k] = v
        return cls(**known)


def _positive(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError("%s must be a number, not %r" % (name, value))
    if not math.isfinite(value) or value <= 0:
        raise ConfigError("%s must be positive, not %r" % (name, value))
    return float(value)


def load_settings(fld: Optional[str] = None) -> Settings:
    fld = fld if fld is not None else folder()
    path = os.path.join(fld, SETTINGS_FILE)
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        _LOGGER.debug("No settings at %s, using defaults", path)
        return Settings()
    except (OSError, ValueError) as e:
        raise ConfigError("Cannot read settings from %s: %s" % (path, e)) from e
    if not isinstance(data, dict):
        raise ConfigError("Settings in %s must be a JSON object" % path)
    _LOGGER.debug("Loaded settings from %s", path)
    return Settings.from_dict(data)
