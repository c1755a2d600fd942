"""Validation helpers for the date and year arguments tools receive."""

import re
from datetime import date

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MIN_YEAR = 2000
MAX_YEAR = 2100


def parse_iso_date(value: str, field: str = "date") -> date:
    """Parse a strict YYYY-MM-DD string.

    Raises:
        ValueError: If the value is not a real calendar date in that format.
    """
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise ValueError(f"{field} must be in YYYY-MM-DD format, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{field} is not a valid calendar date: {value!r}") from None


def validate_date_range(start_date: str, end_date: str) -> tuple[date, date]:
    """Validate both ends of a range and require start <= end."""
    start = parse_iso_date(start_date, "start_date")
    end = parse_iso_date(end_date, "end_date")
    if start > end:
        raise ValueError(f"start_date ({start_date}) must not be after end_date ({end_date})")
    return start, end


def validate_year(year: int) -> int:
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValueError(f"year must be an integer, got {year!r}")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValueError(f"year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}")
    return year


def year_bounds(year: int) -> tuple[str, str]:
    """First and last day of a calendar year as ISO strings."""
    return f"{year}-01-01", f"{year}-12-31"
