"""Tests for the recurrence expander: pure functions, no IO."""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from homeschool.services.recurrence import (
    RecurrenceError,
    RecurrenceExpander,
    expand,
    occurrence_dates,
    parse_rule,
    validate_rule,
)
from tests.helpers import utc

START = utc(2025, 11, 15, 10, 0)  # a Saturday
HOUR = timedelta(hours=1)


def starts(rule, start=START, end=None, **kwargs):
    window = {k: kwargs.pop(k) for k in ("window_start", "window_end") if k in kwargs}
    return [o.start for o in expand(start, end or start + HOUR, rule, **window, **kwargs)]


# --- Properties ---


@pytest.mark.parametrize("count,interval", [(1, 1), (5, 1), (6, 2), (10, 3)])
def test_weekly_count_yields_exactly_count_spaced_by_interval(count, interval):
    result = starts(f"FREQ=WEEKLY;INTERVAL={interval};COUNT={count}")
    assert len(result) == count
    for previous, current in zip(result, result[1:]):
        assert current - previous == timedelta(days=7 * interval)


def test_until_bounds_every_occurrence():
    until = utc(2025, 12, 20, 10, 0)
    result = starts("FREQ=DAILY;UNTIL=20251220T100000Z")
    assert result[-1] == until
    assert all(s <= until for s in result)
    assert len(result) == 36


def test_restarting_expansion_is_idempotent():
    expander = RecurrenceExpander(START, START + HOUR, parse_rule("FREQ=WEEKLY;BYDAY=MO,WE,FR"))
    window = (utc(2025, 11, 1), utc(2026, 1, 1))
    first = list(expander.occurrences(*window))
    second = list(expander.occurrences(*window))
    assert first == second
    assert first


def test_sub_window_is_subset_of_super_window():
    rule = "FREQ=DAILY;INTERVAL=2"
    wide = set(starts(rule, window_start=utc(2025, 11, 1), window_end=utc(2026, 2, 1)))
    narrow = set(starts(rule, window_start=utc(2025, 12, 3, 12), window_end=utc(2025, 12, 20)))
    assert narrow
    assert narrow <= wide


@pytest.mark.parametrize("rule", [
    "FREQ=FORTNIGHTLY",
    "FREQ=HOURLY",
    "FREQ=",
    "INTERVAL=2",
    "FREQ=WEEKLY;BYDAY=XX",
    "FREQ=WEEKLY;INTERVAL=0",
    "FREQ=WEEKLY;COUNT=-1",
    "FREQ=WEEKLY;BYSETPOS=1",
    "FREQ=WEEKLY;FREQ=DAILY",
    "",
])
def test_malformed_rules_are_rejected(rule):
    with pytest.raises(RecurrenceError):
        parse_rule(rule)


def test_weekly_by_day_includes_occurrence_zero():
    result = starts(
        "FREQ=WEEKLY;BYDAY=MO,WE,FR",
        window_start=utc(2025, 11, 15),
        window_end=utc(2025, 11, 22),
    )
    assert result == [
        utc(2025, 11, 15, 10),
        utc(2025, 11, 17, 10),
        utc(2025, 11, 19, 10),
        utc(2025, 11, 21, 10),
    ]


# --- Rule semantics ---


def test_occurrence_zero_counts_toward_count():
    result = starts("FREQ=WEEKLY;BYDAY=MO;COUNT=3")
    assert result == [utc(2025, 11, 15, 10), utc(2025, 11, 17, 10), utc(2025, 11, 24, 10)]


def test_count_and_until_cannot_be_combined():
    with pytest.raises(RecurrenceError, match="COUNT and UNTIL"):
        parse_rule("FREQ=DAILY;COUNT=3;UNTIL=20251201T000000Z")


def test_monthly_rule_skips_months_without_the_day():
    result = starts("FREQ=MONTHLY;COUNT=3", start=utc(2025, 1, 31, 9))
    assert [s.date() for s in result] == [date(2025, 1, 31), date(2025, 3, 31), date(2025, 5, 31)]


def test_monthly_ordinal_weekday():
    # First Monday of each month
    result = starts("FREQ=MONTHLY;BYDAY=1MO;COUNT=3", start=utc(2025, 9, 1, 9))
    assert [s.date() for s in result] == [date(2025, 9, 1), date(2025, 10, 6), date(2025, 11, 3)]


def test_ordinals_only_on_monthly_rules():
    with pytest.raises(RecurrenceError):
        parse_rule("FREQ=WEEKLY;BYDAY=1MO")


def test_wall_clock_time_holds_across_dst():
    zone = ZoneInfo("America/New_York")
    start = datetime(2025, 10, 27, 9, 0, tzinfo=zone)
    result = starts("FREQ=WEEKLY;COUNT=2", start=start, tz="America/New_York")
    assert [s.astimezone(zone).hour for s in result] == [9, 9]
    assert [s.hour for s in result] == [13, 14]
    assert all(s.tzinfo == timezone.utc for s in result)


def test_date_only_until_includes_that_whole_day():
    result = starts("FREQ=DAILY;UNTIL=20251117", start=utc(2025, 11, 15, 22))
    assert [s.date() for s in result] == [date(2025, 11, 15), date(2025, 11, 16), date(2025, 11, 17)]


def test_series_end_further_bounds_the_rule():
    result = starts("FREQ=DAILY", series_end=utc(2025, 11, 18, 10))
    assert result[-1] == utc(2025, 11, 18, 10)
    assert len(result) == 4


def test_series_end_before_start_is_rejected():
    with pytest.raises(RecurrenceError):
        RecurrenceExpander(START, START + HOUR, parse_rule("FREQ=DAILY"), series_end=START - HOUR)


def test_naive_datetimes_are_rejected():
    with pytest.raises(RecurrenceError):
        RecurrenceExpander(datetime(2025, 11, 15, 10), datetime(2025, 11, 15, 11), parse_rule("FREQ=DAILY"))


def test_unknown_time_zone_is_rejected():
    with pytest.raises(RecurrenceError, match="time zone"):
        RecurrenceExpander(START, START + HOUR, parse_rule("FREQ=DAILY"), tz="Mars/Olympus")


# --- Windows ---


def test_occurrence_spanning_window_start_is_included():
    result = list(expand(
        START, START + timedelta(hours=3), "FREQ=DAILY;COUNT=3",
        window_start=utc(2025, 11, 16, 11), window_end=utc(2025, 11, 17),
    ))
    assert [o.start for o in result] == [utc(2025, 11, 16, 10)]
    assert result[0].end == utc(2025, 11, 16, 13)
    assert result[0].index == 1


def test_occurrence_starting_at_window_end_is_excluded():
    result = starts("FREQ=DAILY", window_start=utc(2025, 11, 15), window_end=utc(2025, 11, 17, 10))
    assert result == [utc(2025, 11, 15, 10), utc(2025, 11, 16, 10)]


def test_zero_length_occurrence_at_window_start_is_included():
    result = starts("FREQ=DAILY;COUNT=3", end=START, window_start=utc(2025, 11, 16, 10), window_end=utc(2025, 11, 20))
    assert result == [utc(2025, 11, 16, 10), utc(2025, 11, 17, 10)]


def test_all_day_zero_length_events_last_a_day():
    result = list(expand(START, START, "FREQ=DAILY;COUNT=1", all_day=True))
    assert result[0].end - result[0].start == timedelta(days=1)


def test_open_ended_rule_stops_at_window_end():
    result = starts("FREQ=DAILY", window_start=utc(2030, 1, 1), window_end=utc(2030, 1, 8))
    assert len(result) == 7


# --- Helpers ---


def test_validate_rule_returns_canonical_text():
    canonical = validate_rule("rrule:freq=weekly;byday=mo,we,mo;interval=1", START)
    assert canonical == "FREQ=WEEKLY;BYDAY=MO,WE"


def test_canonical_text_round_trips_until():
    rule = parse_rule("FREQ=DAILY;UNTIL=20251220T100000Z")
    assert str(rule) == "FREQ=DAILY;UNTIL=20251220T100000Z"
    assert parse_rule(str(rule)) == rule


def test_occurrence_dates_are_local_dates():
    start = datetime(2025, 11, 15, 23, 30, tzinfo=ZoneInfo("America/Los_Angeles"))
    dates = occurrence_dates(start, "FREQ=DAILY", limit=3, tz="America/Los_Angeles")
    assert dates == [date(2025, 11, 15), date(2025, 11, 16), date(2025, 11, 17)]
