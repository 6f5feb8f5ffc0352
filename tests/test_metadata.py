from datetime import timedelta

from mprisevents.events import TrackChanged
from mprisevents.metadata import Metadata, translate


def test_well_formed_payload() -> None:
    md = translate(
        {
            "mpris:trackid": "/org/mpris/MediaPlayer2/Track/7",
            "xesam:title": "So What",
            "xesam:artist": ["Miles Davis", "John Coltrane"],
            "xesam:album": "Kind of Blue",
            "mpris:length": 562_000_000,
            "mpris:artUrl": "file:///tmp/cover.jpg",
        }
    )
    assert md.track_id == "/org/mpris/MediaPlayer2/Track/7"
    assert md.title == "So What"
    assert md.artists == ("Miles Davis", "John Coltrane")
    assert md.album == "Kind of Blue"
    assert md.length == timedelta(seconds=562)
    assert md.art_url == "file:///tmp/cover.jpg"
    assert md.rest == {}
    assert md.diagnostics == []


def test_one_bad_field_spares_the_others() -> None:
    md = translate(
        {
            "xesam:title": "Freddie Freeloader",
            "xesam:artist": "Miles Davis",
            "xesam:album": "Kind of Blue",
            "mpris:length": 589_000_000,
            "xesam:genre": ["Jazz"],
            "vlc:nowplaying": {"nested": 1},
        }
    )
    assert md.artists is None
    assert md.title == "Freddie Freeloader"
    assert md.album == "Kind of Blue"
    assert md.length == timedelta(seconds=589)
    assert md.rest == {"xesam:genre": ["Jazz"], "vlc:nowplaying": {"nested": 1}}
    assert [d.field for d in md.diagnostics] == ["xesam:artist"]


def test_boolean_is_not_a_length() -> None:
    md = translate({"mpris:length": True})
    assert md.length is None
    assert md.diagnostics[0].field == "mpris:length"


def test_real_length_accepted() -> None:
    md = translate({"mpris:length": 1_500_000.0})
    assert md.length == timedelta(seconds=1.5)


def test_negative_length_clamped() -> None:
    md = translate({"mpris:length": -5})
    assert md.length == timedelta(0)
    assert len(md.diagnostics) == 1


def test_not_a_mapping() -> None:
    md = translate(["nope"])
    assert md.is_empty()
    assert md.diagnostics[0].field == "Metadata"


def test_nothing_fabricated() -> None:
    md = translate({})
    assert md == Metadata()
    assert md.is_empty()


def test_diagnostics_ignored_for_equality() -> None:
    assert translate({"xesam:title": 3}) == translate({})


def test_convenience_accessors_read_rest() -> None:
    md = translate(
        {
            "xesam:albumArtist": ["Miles Davis"],
            "xesam:url": "file:///music/so_what.flac",
            "xesam:trackNumber": 1,
        }
    )
    assert md.album_artists == ["Miles Davis"]
    assert md.url == "file:///music/so_what.flac"
    assert md.track_number == 1
    assert set(md.rest) == {"xesam:albumArtist", "xesam:url", "xesam:trackNumber"}


def test_as_dict_restores_wire_form() -> None:
    payload = {
        "mpris:trackid": "/t/1",
        "xesam:title": "Blue in Green",
        "mpris:length": 337_000_000,
        "xesam:genre": ["Jazz"],
    }
    assert translate(payload).as_dict() == payload


def test_out_of_range_length_spares_the_others() -> None:
    md = translate({"mpris:length": 1e30, "xesam:title": "Milestones"})
    assert md.length is None
    assert md.title == "Milestones"
    assert [d.field for d in md.diagnostics] == ["mpris:length"]
    md = translate({"mpris:length": 10**30})
    assert md.length is None
    assert md.diagnostics[0].reason == "out of range"


def test_records_are_hashable() -> None:
    one = translate(
        {
            "xesam:title": "So What",
            "xesam:artist": ["Miles Davis"],
            "xesam:genre": ["Jazz"],
        }
    )
    two = translate(
        {
            "xesam:title": "So What",
            "xesam:artist": ["Miles Davis"],
            "xesam:genre": ["Jazz"],
        }
    )
    assert hash(one) == hash(two)
    assert len({TrackChanged(one), TrackChanged(two)}) == 1
