"""Tests for anchor parsing and measure/beat resolution."""
import pytest

from scorefollow.errors import LookupMiss
from scorefollow.seek import parse_anchor, resolve, resolve_range
from scorefollow.timemap import Anchor

from conftest import tp


@pytest.fixture
def repeated_timemap():
    # measure 5 beat 1 is played twice (first and second time through)
    return [
        tp(0.0, 0.0, m=1, b=0.0),
        tp(16.0, 20.0, m=5, b=0.0),
        tp(17.0, 21.0, m=5, b=1.0),
        tp(20.0, 24.0, m=6, b=0.0),
        tp(16.0, 45.0, m=5, b=0.0),
        tp(24.0, 60.0, m=7, b=0.0),
    ]


def test_parse_defaults():
    rng = parse_anchor("")
    assert rng.start == Anchor(measure=1, beat=1.0, repeat=0)
    assert rng.stop is None


def test_parse_full_anchor_with_stop():
    rng = parse_anchor("#m12b3r1-m16b2")
    assert rng.start == Anchor(12, 3.0, 1)
    assert rng.stop == Anchor(16, 2.0, 0)


def test_parse_fractional_and_negative_beats():
    assert parse_anchor("m4b2.5").start.beat == 2.5
    rng = parse_anchor("m4b-0.5-m5")
    assert rng.start.beat == -0.5
    assert rng.stop == Anchor(5, 1.0, 0)


def test_parse_malformed_components_fall_back():
    rng = parse_anchor("bogus")
    assert rng.start == Anchor()
    assert parse_anchor("m7bx").start == Anchor(7, 1.0, 0)


def test_repeat_disambiguation(repeated_timemap):
    assert resolve(5, 1, 0, repeated_timemap) == 45.0
    assert resolve(5, 1, 1, repeated_timemap) == 20.0
    assert resolve(5, 1, 2, repeated_timemap) == 45.0


def test_single_match(repeated_timemap):
    assert resolve(5, 2, 0, repeated_timemap) == 21.0
    assert resolve(7, 1, 1, repeated_timemap) == 60.0


def test_no_match_raises(repeated_timemap):
    with pytest.raises(LookupMiss):
        resolve(9, 1, 0, repeated_timemap)


def test_range_keeps_later_stop(repeated_timemap):
    start, stop = resolve_range(parse_anchor("m5r1-m6"), repeated_timemap)
    assert (start, stop) == (20.0, 24.0)


def test_range_discards_stop_not_after_start(repeated_timemap):
    start, stop = resolve_range(parse_anchor("m5-m6"), repeated_timemap)
    assert start == 45.0
    assert stop is None


def test_range_ignores_missing_stop(repeated_timemap):
    assert resolve_range(parse_anchor("m1-m99"), repeated_timemap) == (0.0, None)
