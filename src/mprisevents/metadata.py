"""
Translation of MPRIS metadata payloads into typed records.

The MPRIS ``Metadata`` property is an ``a{sv}`` mapping.  A handful of keys
have well-known types; players are free to add any others.  Players also get
the types of the well-known keys wrong surprisingly often (a single string
where a list of artists belongs, a length sent as a string), so each field is
checked on its own and a bad one never spoils the rest of the record.
"""

import logging
import math

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, NewType, Optional, Tuple, Union

from mprisevents.errors import FieldTypeError


_LOGGER = logging.getLogger(__name__)

TrackId = NewType("TrackId", str)

# Native shapes of unpacked D-Bus variants.
WireValue = Union[str, int, float, bool, List[Any], Dict[str, Any]]

KEY_TRACKID = "mpris:trackid"
KEY_TITLE = "xesam:title"
KEY_ARTIST = "xesam:artist"
KEY_ALBUM = "xesam:album"
KEY_LENGTH = "mpris:length"
KEY_ART_URL = "mpris:artUrl"

KEY_ALBUM_ARTIST = "xesam:albumArtist"
KEY_URL = "xesam:url"
KEY_TRACK_NUMBER = "xesam:trackNumber"

WELL_KNOWN_KEYS = (
    KEY_TRACKID,
    KEY_TITLE,
    KEY_ARTIST,
    KEY_ALBUM,
    KEY_LENGTH,
    KEY_ART_URL,
)


@dataclass(frozen=True)
class Metadata:
    track_id: Optional[TrackId] = None
    title: Optional[str] = None
    artists: Optional[Tuple[str, ...]] = None
    album: Optional[str] = None
    length: Optional[timedelta] = None
    art_url: Optional[str] = None
    rest: Dict[str, WireValue] = field(default_factory=dict)
    diagnostics: List[FieldTypeError] = field(
        default_factory=list,
        compare=False,
        repr=False,
    )

    def __hash__(self) -> int:
        # rest may hold lists and dicts; equal records still hash equal.
        return hash(
            (
                self.track_id,
                self.title,
                self.artists,
                self.album,
                self.length,
                self.art_url,
            )
        )

    def is_empty(self) -> bool:
        return not self.rest and all(
            getattr(self, f) is None
            for f in ("track_id", "title", "artists", "album", "length", "art_url")
        )

    @property
    def album_artists(self) -> Optional[List[str]]:
        v = self.rest.get(KEY_ALBUM_ARTIST)
        return list(v) if _is_string_list(v) else None

    @property
    def url(self) -> Optional[str]:
        v = self.rest.get(KEY_URL)
        return v if isinstance(v, str) else None

    @property
    def track_number(self) -> Optional[int]:
        v = self.rest.get(KEY_TRACK_NUMBER)
        if isinstance(v, int) and not isinstance(v, bool):
            return v
        return None

    def as_dict(self) -> Dict[str, WireValue]:
        """Returns the record in wire form, microseconds and all."""
        d: Dict[str, WireValue] = dict(self.rest)
        if self.track_id is not None:
            d[KEY_TRACKID] = self.track_id
        if self.title is not None:
            d[KEY_TITLE] = self.title
        if self.artists is not None:
            d[KEY_ARTIST] = list(self.artists)
        if self.album is not None:
            d[KEY_ALBUM] = self.album
        if self.length is not None:
            d[KEY_LENGTH] = usec(self.length)
        if self.art_url is not None:
            d[KEY_ART_URL] = self.art_url
        return d


def usec(d: timedelta) -> int:
    return d // timedelta(microseconds=1)


def _is_string_list(v: Any) -> bool:
    return isinstance(v, (list, tuple)) and all(isinstance(x, str) for x in v)


def _string(key: str, v: Any) -> str:
    if not isinstance(v, str):
        raise FieldTypeError(key, v, "expected a string")
    return v


def _string_list(key: str, v: Any) -> Tuple[str, ...]:
    if not _is_string_list(v):
        raise FieldTypeError(key, v, "expected a list of strings")
    return tuple(v)


def _length(key: str, v: Any) -> timedelta:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise FieldTypeError(key, v, "expected an integer")
    if isinstance(v, float):
        if not math.isfinite(v):
            raise FieldTypeError(key, v, "expected a finite number")
        v = int(v)
    try:
        return timedelta(microseconds=v)
    except OverflowError:
        raise FieldTypeError(key, v, "out of range")


def translate(payload: Any) -> Metadata:
    """
    Builds a Metadata record out of an unpacked ``Metadata`` property value.

    Fields that cannot be decoded are left out and recorded in the
    ``diagnostics`` of the result.  Keys that are not well-known are kept
    in ``rest`` exactly as they came.
    """
    diagnostics: List[FieldTypeError] = []
    if not isinstance(payload, dict):
        diag = FieldTypeError("Metadata", payload, "expected a mapping")
        _LOGGER.debug("Cannot translate metadata: %s", diag)
        return Metadata(diagnostics=[diag])

    kw: Dict[str, Any] = {}
    rest: Dict[str, WireValue] = {}
    converters = {
        KEY_TRACKID: ("track_id", _string),
        KEY_TITLE: ("title", _string),
        KEY_ARTIST: ("artists", _string_list),
        KEY_ALBUM: ("album", _string),
        KEY_LENGTH: ("length", _length),
        KEY_ART_URL: ("art_url", _string),
    }

    for key, value in payload.items():
        if key not in converters:
            rest[key] = value
            continue
        attr, conv = converters[key]
        try:
            kw[attr] = conv(key, value)
        except FieldTypeError as e:
            _LOGGER.debug("Dropping metadata field: %s", e)
            diagnostics.append(e)

    length = kw.get("length")
    if length is not None and length < timedelta(0):
        diag = FieldTypeError(KEY_LENGTH, payload[KEY_LENGTH], "negative length")
        _LOGGER.debug("Clamping metadata field: %s", diag)
        diagnostics.append(diag)
        kw["length"] = timedelta(0)

    if "track_id" in kw:
        kw["track_id"] = TrackId(kw["track_id"])

    return Metadata(rest=rest, diagnostics=diagnostics, **kw)
