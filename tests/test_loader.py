"""Tests for reading score and timemap JSON."""
import base64
import logging

import pytest

from scorefollow.errors import MissingDataError
from scorefollow.loader import (
    load_bundle, load_recordings, load_score, parse_recordings, parse_score, parse_timemap,
)

from conftest import write_json

SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg">'
    '<g class="noteon-0 noteoff-1d5" id="n1"/>'
    '<g class="noteon-1d5 noteoff-2"/>'
    '<g class="staff"/>'
    '</svg>'
)

RAW_TIMEMAP = [
    {"m": 1, "moffset": 0, "qstamp": 0, "tstamp": 0.5},
    {"m": 1, "moffset": 2, "qstamp": 2, "tstamp": 1.5},
]


def test_timemap_accepts_short_and_long_keys():
    tm = parse_timemap(RAW_TIMEMAP + [{"measure": 2, "beatOffset": 0, "qstamp": 4, "tstamp": 2.5}])
    assert [(p.measure, p.beat_offset) for p in tm] == [(1, 0.0), (1, 2.0), (2, 0.0)]


def test_malformed_timepoints_are_skipped(caplog):
    with caplog.at_level(logging.WARNING, logger="scorefollow.loader"):
        tm = parse_timemap([{"qstamp": 1, "tstamp": 2}, {"qstamp": "x", "tstamp": 1}, {"tstamp": 3}])
    assert len(tm) == 1
    assert "malformed timepoint" in caplog.text


def test_recordings_metadata_and_media():
    recs = parse_recordings({"timemaps": [{
        "title": ["Live 1998", "other"],
        "title-url": "https://example.org/t",
        "audio": "a.mp3", "type": "audio/mpeg",
        "video": {"file": "v.mp4", "type": "video/mp4"},
        "timemap": RAW_TIMEMAP,
    }]})
    r = recs[0]
    assert r.title == "Live 1998"
    assert r.title_url == "https://example.org/t"
    assert r.audio.file == "a.mp3" and r.audio.mime_type == "audio/mpeg"
    assert r.video.mime_type == "video/mp4"
    assert r.youtube is None


def test_recording_timemap_from_separate_file(tmp_path):
    write_json(tmp_path / "take1.json", {"timemap": RAW_TIMEMAP})
    path = write_json(tmp_path / "timemaps.json", [{"file": "take1.json", "audio": "a.mp3"}])
    recs = load_recordings(path)
    assert len(recs[0].timemap) == 2
    assert recs[0].audio.file == "a.mp3"


def test_no_timemaps_is_missing_data():
    with pytest.raises(MissingDataError):
        parse_recordings({"score": []})
    with pytest.raises(MissingDataError):
        parse_recordings([{"audio": "a.mp3"}])
    with pytest.raises(MissingDataError):
        parse_recordings([{"timemap": []}])


def test_unreadable_files(tmp_path):
    with pytest.raises(MissingDataError):
        load_recordings(tmp_path / "nope.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(MissingDataError):
        load_score(bad)


def test_score_events_from_svg(tmp_path):
    path = write_json(tmp_path / "score.json", {
        "title": "Prelude",
        "svg": {"sys1": SVG},
        "score": [[{"id": "sys1", "width": 800, "height": 120}]],
    })
    score = load_score(path)
    assert score.title == "Prelude"
    assert list(score.events) == [0.0, 1.5, 2.0]
    assert score.movements[0][0].width == 800.0


def test_score_svg_may_be_base64(tmp_path):
    encoded = base64.b64encode(SVG.encode("utf-8")).decode("ascii")
    path = write_json(tmp_path / "score.json", {"svg": {"s": encoded}, "score": [[{"id": "s"}]]})
    assert len(load_score(path).events) == 3


def test_explicit_qstamps_win(tmp_path):
    path = write_json(tmp_path / "score.json", {"score": [[{"id": "s"}]], "qstamps": [2, 0, 1, 1]})
    assert list(load_score(path).events) == [0.0, 1.0, 2.0]


def test_score_without_events_or_systems(tmp_path):
    with pytest.raises(MissingDataError):
        load_score(write_json(tmp_path / "a.json", {"title": "x"}))
    with pytest.raises(MissingDataError):
        load_score(write_json(tmp_path / "b.json", {"score": [[{"id": "s"}]]}))


def test_bundle(tmp_path):
    path = write_json(tmp_path / "all.json", {
        "score": {"score": [[{"id": "s"}]], "qstamps": [0, 1, 2]},
        "timemaps": [{"timemap": RAW_TIMEMAP}],
    })
    score, recs = load_bundle(path)
    assert len(score.events) == 3
    assert len(recs) == 1


def test_explicit_qstamps_use_markup_encoding(caplog):
    with caplog.at_level(logging.WARNING, logger="scorefollow.loader"):
        score = parse_score({"score": [[{"id": "s"}]], "qstamps": ["1d5", "2", 0, "bogus"]})
    assert list(score.events) == [0.0, 1.5, 2.0]
    assert "undecodable qstamp" in caplog.text


def test_no_decodable_qstamps_is_missing_data():
    with pytest.raises(MissingDataError):
        parse_score({"score": [[{"id": "s"}]], "qstamps": ["x", "y"]})


def test_misshapen_systems_are_skipped(caplog):
    with caplog.at_level(logging.WARNING, logger="scorefollow.loader"):
        score = parse_score({"score": [[{"id": "s1"}, "junk"], {"id": "flat"}], "qstamps": [0, 1]})
    assert [[s.id for s in mv] for mv in score.movements] == [["s1"]]
    assert "skipping" in caplog.text


def test_score_without_nested_systems_is_missing_data():
    with pytest.raises(MissingDataError):
        parse_score({"score": [{"id": "s"}], "qstamps": [0, 1]})
    with pytest.raises(MissingDataError):
        parse_score({"score": "s", "qstamps": [0, 1]})


def test_recording_entries_must_be_objects():
    with pytest.raises(MissingDataError):
        parse_recordings(["take1.json"])
    with pytest.raises(MissingDataError):
        parse_recordings({"timemaps": [{"timemap": RAW_TIMEMAP}, 7]})


def test_broken_svg_markup_is_missing_data():
    with pytest.raises(MissingDataError):
        parse_score({"svg": {"s": "<svg><g class='noteon-1'>"}, "score": [[{"id": "s"}]]})
