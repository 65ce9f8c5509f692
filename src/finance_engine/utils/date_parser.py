"""Date parsing and arithmetic utilities."""

from datetime import date, datetime
from dateutil import parser as date_parser


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    ISO dates ("2024-01-15") are read directly; anything else ("01/15/2024",
    "Jan 15, 2024") goes through dateutil.

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Empty date string")

    date_str = date_str.strip()
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    try:
        dt = date_parser.parse(date_str)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
    return dt.date()


def days_between(first: date, second: date) -> int:
    """Return the absolute number of calendar days between two dates."""
    if isinstance(first, datetime):
        first = first.date()
    if isinstance(second, datetime):
        second = second.date()
    return abs((first - second).days)
