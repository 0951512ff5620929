"""Financial year keys of the form "2024-25"."""

import re
from datetime import date

from src.errors import ValidationError

_YEAR_KEY = re.compile(r"^(\d{4})-(\d{2})$")


def parse_financial_year(key: str) -> int:
    """Return the calendar year a financial year key starts in.

    Raises:
        ValidationError: If the key is not ``YYYY-YY`` with consecutive years.
    """
    match = _YEAR_KEY.match(key) if isinstance(key, str) else None
    if match is None:
        raise ValidationError(f"Malformed financial year: {key!r}. Expected e.g. '2024-25'.", value=key)
    start = int(match.group(1))
    if (start + 1) % 100 != int(match.group(2)):
        raise ValidationError(f"Malformed financial year: {key!r}. Years must be consecutive.", value=key)
    return start


def format_financial_year(start_year: int) -> str:
    """Build the key for the financial year starting in ``start_year``."""
    return f"{start_year}-{(start_year + 1) % 100:02d}"


def previous_financial_year(key: str) -> str:
    return format_financial_year(parse_financial_year(key) - 1)


def current_financial_year(today: date, start_month: int = 7) -> str:
    """Financial year containing ``today``; years start on the 1st of ``start_month``."""
    start = today.year if today.month >= start_month else today.year - 1
    return format_financial_year(start)
