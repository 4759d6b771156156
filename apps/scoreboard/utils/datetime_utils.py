"""
Datetime utility functions.
"""

from datetime import datetime, date
from typing import Optional, Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def parse_game_date(date_input: Optional[Union[str, date]]) -> date:
    """
    Parse the date a game was played.

    Accepts ISO dates ("2025-03-14"), US dates ("3/14/2025"), date objects,
    or None (today in UTC).

    Raises:
        ValueError: If the string is not a recognised date format
    """
    if date_input is None:
        return utcnow().date()
    if isinstance(date_input, datetime):
        return date_input.date()
    if isinstance(date_input, date):
        return date_input

    date_str = date_input.strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid game date: {date_input}")
