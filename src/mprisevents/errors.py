import enum

from typing import Any


class ErrorKind(enum.Enum):
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    MISSING_PROPERTY = "missing-property"
    BAD_REPLY = "bad-reply"


class DecodeError(ValueError):
    """A signal payload had a shape we do not understand."""


class FieldTypeError(ValueError):
    def __init__(self, field: str, value: Any, reason: str = "") -> None:
        self.field = field
        self.value = value
        self.reason = reason or "unexpected type %s" % type(value).__name__
        ValueError.__init__(self, "%s: %s" % (field, self.reason))


class TransportError(Exception):
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        Exception.__init__(self, message)
        if kind is not None:
            self.kind = kind


class PeerGone(TransportError):
    """The player is no longer on the bus."""


class PropertyMissing(TransportError):
    kind = ErrorKind.MISSING_PROPERTY


class ConfigError(ValueError):
    pass
