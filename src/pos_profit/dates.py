"""Business-timezone date utilities.

The ERP stores every timestamp in UTC while the stores operate on a fixed
UTC-5 business clock. This module centralises the conversions:

- ``business_now`` / ``business_today``: current instant on the business clock
- ``date_key``: canonical ``YYYY-MM-DD`` keys used for every date filter
- ``period_bounds``: inclusive start/end keys for report periods
- ``query_window``: UTC boundaries for the ERP ``date_order`` filter
- ``to_business_time``: ERP UTC strings to business-local wall time

Examples:
    >>> period_bounds("month", year=2024, month=1)
    PeriodBounds(start='2024-02-01', end='2024-02-29')
    >>> query_window("2024-03-01", "2024-03-31")
    ('2024-03-01 05:00:00', '2024-04-01 04:59:59')

"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from pos_profit.exceptions import ConfigError

# Fixed business clock, independent of the host timezone
BUSINESS_UTC_OFFSET = timedelta(hours=-5)

DATE_FMT = "%Y-%m-%d"
ERP_DATETIME_FMT = "%Y-%m-%d %H:%M:%S"

PERIOD_MODES = ("today", "month", "year", "custom", "month_to_date", "year_to_date")

# ERP datetimes: "2024-03-15 10:00:00", optionally with "T" and fractional seconds
ERP_DATETIME_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[ T](?P<time>\d{2}:\d{2}:\d{2})(?:\.\d+)?Z?$"
)


@dataclass(frozen=True)
class PeriodBounds:
    """Inclusive period boundaries as ``YYYY-MM-DD`` keys."""

    start: str
    end: str


def parse_date(s: str) -> date:
    """Parse a date string in YYYY-MM-DD format.

    Raises:
        ValueError: If the date string is not in YYYY-MM-DD format.

    """
    return datetime.strptime(s, DATE_FMT).date()


def business_now(now: Optional[datetime] = None) -> datetime:
    """Return the current instant on the business clock as a naive datetime.

    The offset is added to the UTC instant directly, so the result never
    depends on the system local timezone.

    Args:
        now: Optional aware datetime standing in for the current instant.
            Naive values are taken to be UTC.

    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.replace(tzinfo=None) + BUSINESS_UTC_OFFSET


def business_today(now: Optional[datetime] = None) -> date:
    """Return today's date on the business clock."""
    return business_now(now).date()


def date_key(value: Union[date, datetime]) -> str:
    """Format a business-frame date or datetime as ``YYYY-MM-DD``."""
    return value.strftime(DATE_FMT)


def to_business_time(utc_value: str) -> datetime:
    """Convert an ERP UTC timestamp string to business-local wall time.

    Args:
        utc_value: Timestamp such as ``"2024-03-15 10:00:00"``.

    Returns:
        Naive datetime shifted by ``BUSINESS_UTC_OFFSET``.

    Raises:
        ValueError: If the string is not a recognised ERP timestamp.

    Examples:
        >>> to_business_time("2024-03-15 03:00:00")
        datetime.datetime(2024, 3, 14, 22, 0)

    """
    m = ERP_DATETIME_RE.match(utc_value.strip())
    if not m:
        raise ValueError(f"Unrecognised ERP timestamp: {utc_value!r}")
    utc = datetime.strptime(f"{m.group('date')} {m.group('time')}", ERP_DATETIME_FMT)
    return utc + BUSINESS_UTC_OFFSET


def period_bounds(
    mode: str,
    *,
    year: Optional[int] = None,
    month: Optional[int] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    today: Optional[date] = None,
) -> PeriodBounds:
    """Compute inclusive start/end keys for a report period.

    Modes:
        - ``today``: start = end = business today
        - ``month``: first/last day of ``month`` (0-indexed) in ``year``
        - ``year``: Jan 1 / Dec 31 of ``year``
        - ``custom``: caller-supplied ``start``/``end``, ordering not enforced
        - ``month_to_date``: first day of the current month through today
        - ``year_to_date``: Jan 1 of the current year through today

    ``year`` and ``month`` default to the current business year and month.

    Raises:
        ConfigError: If the mode is unknown or its parameters are invalid.

    """
    if today is None:
        today = business_today()

    if mode == "today":
        key = date_key(today)
        return PeriodBounds(key, key)

    if mode == "month":
        y = today.year if year is None else year
        m = today.month - 1 if month is None else month
        if not 0 <= m <= 11:
            raise ConfigError(f"Month must be 0-11 (0-indexed), got {m}")
        last_day = calendar.monthrange(y, m + 1)[1]
        return PeriodBounds(date_key(date(y, m + 1, 1)), date_key(date(y, m + 1, last_day)))

    if mode == "year":
        y = today.year if year is None else year
        return PeriodBounds(date_key(date(y, 1, 1)), date_key(date(y, 12, 31)))

    if mode == "custom":
        if not start or not end:
            raise ConfigError("Custom period requires both start and end")
        try:
            parse_date(start)
            parse_date(end)
        except ValueError as e:
            raise ConfigError(f"Invalid custom period: {e}") from e
        return PeriodBounds(start, end)

    if mode == "month_to_date":
        return PeriodBounds(date_key(today.replace(day=1)), date_key(today))

    if mode == "year_to_date":
        return PeriodBounds(date_key(date(today.year, 1, 1)), date_key(today))

    raise ConfigError(f"Invalid period mode '{mode}'. Must be one of {PERIOD_MODES}.")


def query_window(start: str, end: str) -> tuple[str, str]:
    """Build the UTC ``date_order`` boundaries for a business-day range.

    Business 00:00 is 05:00 UTC, so both boundaries move forward five hours:
    the window opens at ``{start} 05:00:00`` and closes at 04:59:59 UTC on the
    day after ``end``. Stopping at ``{end} 04:59:59`` instead would cut off the
    whole last business day, so the end day is deliberately exclusive at
    05:00 UTC of the following calendar day.

    Args:
        start: First business day (YYYY-MM-DD, inclusive).
        end: Last business day (YYYY-MM-DD, inclusive).

    Returns:
        Tuple of ``(start_boundary, end_boundary)`` strings.

    """
    shift = -BUSINESS_UTC_OFFSET
    start_utc = datetime.combine(parse_date(start), datetime.min.time()) + shift
    end_utc = datetime.combine(parse_date(end) + timedelta(days=1), datetime.min.time()) + shift
    end_utc -= timedelta(seconds=1)
    return start_utc.strftime(ERP_DATETIME_FMT), end_utc.strftime(ERP_DATETIME_FMT)


def in_range(key: str, start: str, end: str) -> bool:
    """Inclusive range check on ``YYYY-MM-DD`` keys.

    Keys sort lexicographically, so ``start > end`` matches nothing.
    """
    return start <= key <= end
