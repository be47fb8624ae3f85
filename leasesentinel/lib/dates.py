"""Calendar-day helpers for deadline eligibility.

All comparisons work on whole calendar days in UTC. Dates are compared as
``date`` objects (or their ISO string form), never by subtracting timestamps,
so daylight-saving transitions and the time of day cannot shift a result.
"""

from datetime import UTC, date, datetime


def today() -> date:
    """Return the current date in UTC."""
    return datetime.now(UTC).date()


def today_iso() -> str:
    """Return the current UTC date as ``YYYY-MM-DD``."""
    return today().isoformat()


def parse_date(value: date | str) -> date:
    """Coerce a ``date`` or ``YYYY-MM-DD`` string to a ``date``.

    Datetimes are rejected rather than silently truncated.
    """
    if isinstance(value, datetime):
        raise ValueError("Expected a calendar date, got a datetime")
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"Invalid date {value!r}: expected YYYY-MM-DD") from None
    raise ValueError(f"Invalid date {value!r}: expected YYYY-MM-DD")


def dates_equal(a: date | str, b: date | str) -> bool:
    """Exact calendar-day equality."""
    return parse_date(a).isoformat() == parse_date(b).isoformat()


def days_between(target: date | str, reference: date | str) -> int:
    """Whole calendar days from *reference* to *target* (negative if target is earlier)."""
    return parse_date(target).toordinal() - parse_date(reference).toordinal()


def within_window(target: date | str, reference: date | str, window_days: int) -> bool:
    """Check whether *target* falls within *window_days* after *reference*.

    Inclusive on both ends, so a window of 0 matches only the reference date.
    Targets before the reference are never within the window.
    """
    if window_days < 0:
        raise ValueError("window_days must be >= 0")
    return 0 <= days_between(target, reference) <= window_days
