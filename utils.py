# utils.py
"""
Utility functions for the letter application.
"""

import re
from datetime import date, datetime
from typing import Optional, Union


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Parse a date sent by a client.

    Accepts 'YYYY-MM-DD', full ISO datetimes (with or without 'Z'),
    and date/datetime objects.

    Raises:
        ValueError: If the string is not a recognizable date.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return datetime.strptime(text[:10], '%Y-%m-%d').date()


def format_letter_date(value: Union[str, date, datetime, None]) -> str:
    """
    Format a date the way it is printed on a letter.

    Examples:
        date(2026, 1, 5) -> "05 January, 2026"
        "2026-01-05" -> "05 January, 2026"
        None -> ""
    """
    if value is None or value == '':
        return ''
    try:
        parsed = parse_date(value)
    except ValueError:
        return str(value)
    return parsed.strftime('%d %B, %Y')


def safe_filename(name: Optional[str], default: str = 'letter') -> str:
    """
    Make a download filename from a letter subject.

    Examples:
        "Offer: Q3 / 2026" -> "Offer_Q3_2026"
        "" -> "letter"
    """
    text = (name or '').strip()
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'[\s]+', '_', text)
    text = text.strip('_-')
    return text[:120] or default
