# homeschool/services/recurrence.py
"""Recurring calendar events.

Rules use a subset of RFC 5545 RRULE syntax::

    FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE,FR;COUNT=10

Supported keys are FREQ (DAILY, WEEKLY, MONTHLY), INTERVAL, BYDAY (with
signed ordinals such as ``1MO`` or ``-1FR`` on monthly rules only),
BYMONTHDAY (monthly only), COUNT and UNTIL. COUNT and UNTIL are mutually
exclusive.

Expansion follows DTSTART semantics: the base event's own start is always
occurrence zero and counts toward COUNT, whether or not it matches BYDAY.
Occurrences are generated in the event's time zone so wall-clock times hold
across DST changes, then reported in UTC. A monthly rule on a day missing
from a month (the 31st in February) skips that month.

Occurrences are produced lazily; an open-ended rule is only walked as far as
the end of the queried window.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from itertools import chain, islice, takewhile
from typing import Iterator, List, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import re

from dateutil import rrule as du

FREQUENCIES = {
    "DAILY": du.DAILY,
    "WEEKLY": du.WEEKLY,
    "MONTHLY": du.MONTHLY,
}

WEEKDAYS = {
    "MO": du.MO,
    "TU": du.TU,
    "WE": du.WE,
    "TH": du.TH,
    "FR": du.FR,
    "SA": du.SA,
    "SU": du.SU,
}

SUPPORTED_KEYS = ("FREQ", "INTERVAL", "BYDAY", "BYMONTHDAY", "COUNT", "UNTIL")

BYDAY_PATTERN = re.compile(r"^([+-]?\d{1,2})?(MO|TU|WE|TH|FR|SA|SU)$")
UNTIL_PATTERN = re.compile(r"^(\d{8})(?:T(\d{6})(Z)?)?$")


class RecurrenceError(ValueError):
    """A recurrence rule that cannot be parsed or expanded."""


@dataclass(frozen=True)
class RecurrenceRule:
    freq: str
    interval: int = 1
    by_day: Tuple[Tuple[Optional[int], str], ...] = ()
    by_month_day: Tuple[int, ...] = ()
    count: Optional[int] = None
    until: Optional[datetime] = None
    until_is_date: bool = False

    def __str__(self) -> str:
        parts = [f"FREQ={self.freq}"]
        if self.interval != 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.by_day:
            parts.append("BYDAY=" + ",".join(
                f"{ordinal}{day}" if ordinal else day for ordinal, day in self.by_day
            ))
        if self.by_month_day:
            parts.append("BYMONTHDAY=" + ",".join(str(d) for d in self.by_month_day))
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.until is not None:
            if self.until_is_date:
                parts.append(f"UNTIL={self.until:%Y%m%d}")
            elif self.until.tzinfo is not None:
                parts.append(f"UNTIL={self.until.astimezone(timezone.utc):%Y%m%dT%H%M%SZ}")
            else:
                parts.append(f"UNTIL={self.until:%Y%m%dT%H%M%S}")
        return ";".join(parts)


class Occurrence(NamedTuple):
    start: datetime
    end: datetime
    index: int


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        raise RecurrenceError(f"Unknown time zone: {name}")


def _positive_int(key: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise RecurrenceError(f"{key} must be an integer, got {value!r}")
    if number <= 0:
        raise RecurrenceError(f"{key} must be a positive integer")
    return number


def _parse_by_day(value: str, freq: str) -> Tuple[Tuple[Optional[int], str], ...]:
    days = []
    for token in value.split(","):
        match = BYDAY_PATTERN.match(token.strip())
        if not match:
            raise RecurrenceError(f"Invalid BYDAY value: {token!r}")
        ordinal = int(match.group(1)) if match.group(1) else None
        if ordinal is not None:
            if freq != "MONTHLY":
                raise RecurrenceError("BYDAY ordinals are only allowed on MONTHLY rules")
            if ordinal == 0 or abs(ordinal) > 5:
                raise RecurrenceError(f"BYDAY ordinal out of range: {token!r}")
        day = (ordinal, match.group(2))
        if day not in days:
            days.append(day)
    return tuple(days)


def _parse_by_month_day(value: str) -> Tuple[int, ...]:
    days = []
    for token in value.split(","):
        try:
            day = int(token)
        except ValueError:
            raise RecurrenceError(f"Invalid BYMONTHDAY value: {token!r}")
        if day == 0 or abs(day) > 31:
            raise RecurrenceError(f"BYMONTHDAY out of range: {day}")
        if day not in days:
            days.append(day)
    return tuple(days)


def _parse_until(value: str) -> Tuple[datetime, bool]:
    match = UNTIL_PATTERN.match(value)
    if not match:
        raise RecurrenceError(f"Invalid UNTIL value: {value!r}")
    day, clock, utc = match.groups()
    try:
        if clock is None:
            return datetime.strptime(day, "%Y%m%d"), True
        parsed = datetime.strptime(day + clock, "%Y%m%d%H%M%S")
    except ValueError:
        raise RecurrenceError(f"Invalid UNTIL value: {value!r}")
    if utc:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed, False


def parse_rule(text: str) -> RecurrenceRule:
    """Parse an RRULE string, rejecting anything unsupported or inconsistent"""
    if not text or not text.strip():
        raise RecurrenceError("Recurrence rule is empty")
    body = text.strip()
    if body.upper().startswith("RRULE:"):
        body = body[len("RRULE:"):]

    values = {}
    for part in body.split(";"):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition("=")
        key, value = key.strip().upper(), value.strip().upper()
        if not sep or not value:
            raise RecurrenceError(f"Malformed rule component: {part!r}")
        if key not in SUPPORTED_KEYS:
            raise RecurrenceError(f"Unsupported recurrence property: {key}")
        if key in values:
            raise RecurrenceError(f"Duplicate recurrence property: {key}")
        values[key] = value

    freq = values.get("FREQ")
    if freq is None:
        raise RecurrenceError("FREQ is required")
    if freq not in FREQUENCIES:
        raise RecurrenceError(f"Unknown frequency: {freq}")
    if "COUNT" in values and "UNTIL" in values:
        raise RecurrenceError("COUNT and UNTIL cannot be combined")
    if "BYMONTHDAY" in values and freq != "MONTHLY":
        raise RecurrenceError("BYMONTHDAY is only allowed on MONTHLY rules")

    until, until_is_date = (None, False)
    if "UNTIL" in values:
        until, until_is_date = _parse_until(values["UNTIL"])

    return RecurrenceRule(
        freq=freq,
        interval=_positive_int("INTERVAL", values["INTERVAL"]) if "INTERVAL" in values else 1,
        by_day=_parse_by_day(values["BYDAY"], freq) if "BYDAY" in values else (),
        by_month_day=_parse_by_month_day(values["BYMONTHDAY"]) if "BYMONTHDAY" in values else (),
        count=_positive_int("COUNT", values["COUNT"]) if "COUNT" in values else None,
        until=until,
        until_is_date=until_is_date,
    )


class RecurrenceExpander:
    """Expand one recurring event into concrete occurrences.

    ``start`` and ``end`` must be timezone-aware. ``series_end`` (the event's
    own end date for the series) further bounds the rule's UNTIL. The
    expander holds no iteration state, so every call to ``occurrences``
    starts from the beginning of the series.
    """

    def __init__(
        self,
        start: datetime,
        end: datetime,
        rule: RecurrenceRule,
        tz: Optional[str] = "UTC",
        all_day: bool = False,
        series_end: Optional[datetime] = None,
    ):
        if start.tzinfo is None or end.tzinfo is None:
            raise RecurrenceError("Event start and end must be timezone-aware")
        if end < start:
            raise RecurrenceError("Event end must not be before its start")

        self.rule = rule
        self.zone = resolve_timezone(tz)
        self.dtstart = start.astimezone(self.zone)
        self.duration = end - start
        if all_day and not self.duration:
            self.duration = timedelta(days=1)

        self.until = self._resolve_until(series_end)
        if self.until is not None and self.until < self.dtstart:
            raise RecurrenceError("Recurrence end must not be before the event start")

        kwargs = {
            "freq": FREQUENCIES[rule.freq],
            "dtstart": self.dtstart,
            "interval": rule.interval,
            "cache": False,
        }
        if rule.by_day:
            kwargs["byweekday"] = [
                WEEKDAYS[day](ordinal) if ordinal else WEEKDAYS[day]
                for ordinal, day in rule.by_day
            ]
        if rule.by_month_day:
            kwargs["bymonthday"] = rule.by_month_day
        self._rrule = du.rrule(**kwargs)

    def _resolve_until(self, series_end: Optional[datetime]) -> Optional[datetime]:
        bounds = []
        until = self.rule.until
        if until is not None:
            if self.rule.until_is_date:
                until = datetime.combine(until.date(), time(23, 59, 59), tzinfo=self.zone)
            elif until.tzinfo is None:
                until = until.replace(tzinfo=self.zone)
            bounds.append(until)
        if series_end is not None:
            if series_end.tzinfo is None:
                raise RecurrenceError("Series end date must be timezone-aware")
            bounds.append(series_end)
        return min(bounds) if bounds else None

    def starts(self) -> Iterator[datetime]:
        """Local start times of the whole series, occurrence zero first"""
        # rrule only yields values >= dtstart, so dtstart can only repeat as the first item
        generated = (dt for dt in self._rrule if dt != self.dtstart)
        series = chain([self.dtstart], generated)
        if self.rule.count is not None:
            series = islice(series, self.rule.count)
        if self.until is not None:
            until = self.until
            series = takewhile(lambda dt: dt <= until, series)
        return series

    def occurrences(
        self,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> Iterator[Occurrence]:
        """Yield occurrences overlapping ``[window_start, window_end)`` in order"""
        for bound in (window_start, window_end):
            if bound is not None and bound.tzinfo is None:
                raise RecurrenceError("Query window bounds must be timezone-aware")

        for index, local_start in enumerate(self.starts()):
            start = local_start.astimezone(timezone.utc)
            if window_end is not None and start >= window_end:
                return
            end = (local_start + self.duration).astimezone(timezone.utc)
            if window_start is not None:
                if self.duration and end <= window_start:
                    continue
                if not self.duration and start < window_start:
                    continue
            yield Occurrence(start, end, index)


def expand(
    start: datetime,
    end: datetime,
    rule: str,
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
    tz: Optional[str] = "UTC",
    all_day: bool = False,
    series_end: Optional[datetime] = None,
) -> Iterator[Occurrence]:
    expander = RecurrenceExpander(start, end, parse_rule(rule), tz=tz, all_day=all_day, series_end=series_end)
    return expander.occurrences(window_start, window_end)


def validate_rule(
    rule: str,
    start: datetime,
    end: Optional[datetime] = None,
    tz: Optional[str] = "UTC",
    series_end: Optional[datetime] = None,
) -> str:
    """Check a rule against its event and return the canonical rule text"""
    parsed = parse_rule(rule)
    RecurrenceExpander(start, end or start, parsed, tz=tz, series_end=series_end)
    return str(parsed)


def occurrence_dates(start: datetime, rule: str, limit: int = 10, tz: Optional[str] = "UTC") -> List[date]:
    """First ``limit`` local occurrence dates of a series, for previews"""
    expander = RecurrenceExpander(start, start, parse_rule(rule), tz=tz)
    return [dt.date() for dt in islice(expander.starts(), limit)]
