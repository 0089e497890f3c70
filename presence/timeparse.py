"""Natural-language deadline resolution.

Turns the optional ``date_token``/``time_token`` pair from the command line
into an absolute local datetime. Everything is wall-clock local time; no
timezone conversion happens here.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

from presence.errors import UnparseableDate, UnparseableTime

DEFAULT_BACK_TIME = time(7, 0)
QUARTER_HOUR_MINUTES = 15

_WEEKDAYS: dict[str, int] = {
    "monday": 0,
    "mon": 0,
    "tuesday": 1,
    "tue": 1,
    "tues": 1,
    "wednesday": 2,
    "wed": 2,
    "thursday": 3,
    "thu": 3,
    "thurs": 3,
    "friday": 4,
    "fri": 4,
    "saturday": 5,
    "sat": 5,
    "sunday": 6,
    "sun": 6,
}

_DATE_RE = re.compile(r"(\d{1,2})[/-](\d{1,2})(?:[/-](\d{4}|\d{2}))?")
_TIME_RE = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*(a\.?m\.?|p\.?m\.?)?")


def resolve(
    now: datetime,
    date_token: str | None = None,
    time_token: str | None = None,
) -> datetime:
    """Resolve optional date/time tokens relative to ``now``.

    - neither token: ``now`` rounded up to the next quarter hour
    - time only: today at that time, or tomorrow if it is not after ``now``
    - date only: that date at 7am
    - both: that date at that time

    Raises:
        UnparseableDate: ``date_token`` matches none of the date forms.
        UnparseableTime: ``time_token`` is not a valid clock time.
    """
    if date_token is None and time_token is None:
        return round_up_to_quarter_hour(now)

    if date_token is None:
        clock = parse_time(time_token)
        candidate = datetime.combine(now.date(), clock, tzinfo=now.tzinfo)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    day = parse_date(date_token, now.date())
    clock = parse_time(time_token) if time_token is not None else DEFAULT_BACK_TIME
    return datetime.combine(day, clock, tzinfo=now.tzinfo)


def round_up_to_quarter_hour(now: datetime) -> datetime:
    """Advance to the next quarter hour; an exact quarter still moves forward."""

    base = now.replace(second=0, microsecond=0)
    return base + timedelta(minutes=QUARTER_HOUR_MINUTES - now.minute % QUARTER_HOUR_MINUTES)


def parse_date(token: str, today: date) -> date:
    """Parse a weekday name, ``tomorrow``, ``M/D`` or ``M/D/Y`` into a date."""

    lower = token.strip().lower()

    weekday = _WEEKDAYS.get(lower)
    if weekday is not None:
        # Same weekday as today means next week, never today.
        delta = (weekday - today.weekday()) % 7 or 7
        return today + timedelta(days=delta)

    if lower == "tomorrow":
        return today + timedelta(days=1)

    match = _DATE_RE.fullmatch(lower)
    if match is None:
        raise UnparseableDate(token)
    month, day = int(match.group(1)), int(match.group(2))

    if match.group(3) is not None:
        year = int(match.group(3))
        if year < 100:
            year += 2000
        try:
            return date(year, month, day)
        except ValueError:
            raise UnparseableDate(token) from None

    # No year: nearest occurrence that is today or later.
    for year in (today.year, today.year + 1):
        try:
            candidate = date(year, month, day)
        except ValueError:
            continue
        if candidate >= today:
            return candidate
    raise UnparseableDate(token)


def parse_time(token: str) -> time:
    """Parse ``9``, ``9:30``, ``9am``, ``1:30 p.m.`` or 24-hour ``15:00``."""

    match = _TIME_RE.fullmatch(token.strip().lower())
    if match is None:
        raise UnparseableTime(token)

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    suffix = match.group(3)
    if minute >= 60:
        raise UnparseableTime(token)

    if suffix is None:
        # No am/pm: 24-hour clock, so a bare "9" stays in the morning.
        if hour >= 24:
            raise UnparseableTime(token)
        return time(hour, minute)

    if not 1 <= hour <= 12:
        raise UnparseableTime(token)
    hour %= 12
    if suffix.startswith("p"):
        hour += 12
    return time(hour, minute)


def format_clock(moment: datetime) -> str:
    """Render a clock time the short way: ``9am``, ``1:30pm``."""

    hour = moment.hour % 12 or 12
    ampm = "am" if moment.hour < 12 else "pm"
    if moment.minute == 0:
        return f"{hour}{ampm}"
    return f"{hour}:{moment.minute:02d}{ampm}"


def format_back(moment: datetime, today: date, with_time: bool = False) -> str:
    """Render ``Back Friday.`` within a week, ``Back 3/10.`` beyond it."""

    if (moment.date() - today).days <= 7:
        label = moment.strftime("%A")
    else:
        label = f"{moment.month}/{moment.day}"
    if with_time:
        label = f"{label} {format_clock(moment)}"
    return f"Back {label}."
