"""Shared parsing helpers for request payloads.

parse_date:        returns None on empty input, raises ValueError on bad input
parse_period_part: "all" or an int within bounds
parse_bool:        JSON booleans plus "true"/"false"/"1"/"0", nothing else
"""
import logging
from datetime import date, datetime

from itil_tracker.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", 1)
_FALSE_VALUES = ("false", "0", 0)


def parse_date(value):
    """Parse a date string (ISO or DD/MM/YYYY) to a date object.

    Returns None for empty input, raises ValueError for anything else that
    cannot be parsed. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD/MM/YYYY (Spanish format)
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, "%d/%m/%Y").date()
    except ValueError as exc:
        raise ValueError(
            "Invalid date format. Use YYYY-MM-DD or DD/MM/YYYY."
        ) from exc


def parse_period_part(value, low: int, high: int, label: str):
    """Parse a year/month query value: ``"all"`` or an int in [low, high].

    Returns ``"all"`` or the int. Raises ValueError on anything else.
    """
    if value is None or value == "all":
        return "all"
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be 'all' or an integer") from None
    if number < low or number > high:
        raise ValueError(f"{label} must be between {low} and {high}")
    return number


def parse_bool(value, field: str) -> bool:
    """Strict boolean for payload flags such as ``confirm`` or ``can_edit``.

    Raises ValidationError for anything outside the accepted spellings.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValidationError(f"{field} must be a boolean", details={field: "invalid"})
