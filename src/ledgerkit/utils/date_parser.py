"""Date parsing utilities."""

import calendar
import re
from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

PERIODS = ("this-month", "this-year", "this-week", "last-month", "last-year", "last-week")

_DAY_MONTH = re.compile(r"^(\d{2})/(\d{2})$")


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "15 Jan 2024") and relative ones:
    "today", "yesterday", "tomorrow", "last/this/next month|year|week" and
    "last <weekday>". Day-first input is tried first for ambiguous slashed
    dates such as "05/03/2024", matching how vouchers are written.

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = today or date.today()

    fixed = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in fixed:
        return fixed[text]

    relative, _, period = text.partition(" ")
    if relative in ("last", "this", "next") and period:
        step = {"last": -1, "this": 0, "next": 1}[relative]
        if period == "month":
            return (today + relativedelta(months=step)).replace(day=1)
        if period == "year":
            return today.replace(month=1, day=1) + relativedelta(years=step)
        if period == "week":
            return _week_start(today) + timedelta(weeks=step)
        if relative == "last" and period in WEEKDAYS:
            days_ago = (today.weekday() - WEEKDAYS.index(period)) % 7 or 7
            return today - timedelta(days=days_ago)

    # ISO dates first: dateutil would read "2024-01-05" as 1 May with dayfirst
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get start and end dates for a named period.

    Current periods end today; past periods cover the whole month, year or
    week (Monday to Sunday).

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()

    if period == "this-month":
        return today.replace(day=1), today
    if period == "this-year":
        return today.replace(month=1, day=1), today
    if period == "this-week":
        return _week_start(today), today
    if period == "last-month":
        start = (today - relativedelta(months=1)).replace(day=1)
        return month_bounds(start.year, start.month)
    if period == "last-year":
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
    if period == "last-week":
        start = _week_start(today) - timedelta(weeks=1)
        return start, start + timedelta(days=6)

    raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def parse_day_month(token: str, year: int) -> Optional[date]:
    """Parse a statement ``DD/MM`` token in the given year.

    Returns None when the token is not a real calendar day, e.g. "31/02" or
    a fraction that merely looks like a date.
    """
    match = _DAY_MONTH.match(token)
    if match is None:
        return None
    day, month = int(match.group(1)), int(match.group(2))
    try:
        return date(year, month, day)
    except ValueError:
        return None
