"""
Date parsing and formatting utilities.
"""

import re
from datetime import date, datetime
from typing import Optional

DATE_SECTION_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def parse_date(date_str: Optional[str]) -> Optional[date]:
    """
    Parse a date string into a date object.
    
    Handles various formats:
    - ISO format (YYYY-MM-DD)
    - ISO datetime (YYYY-MM-DDTHH:MM:SS)
    
    Args:
        date_str: Date string to parse
    
    Returns:
        Parsed date object or None if invalid
    """
    if not date_str:
        return None
    
    # Take only date part if it's a datetime string
    if 'T' in date_str:
        date_str = date_str.split('T')[0]
    
    try:
        return datetime.strptime(date_str, '%Y-%m-%d').date()
    except ValueError:
        return None


def format_date(d: Optional[date]) -> str:
    """
    Format a date object as ISO string (YYYY-MM-DD).
    
    Args:
        d: Date object to format
    
    Returns:
        ISO formatted date string, or an empty string for None
    """
    if not d:
        return ""
    
    return d.strftime('%Y-%m-%d')


def is_date_section(name: Optional[str]) -> bool:
    """Return True when a section name is a real YYYY-MM-DD date."""
    if not name or not DATE_SECTION_RE.match(name):
        return False
    return parse_date(name) is not None


def now_local() -> datetime:
    """Current time as an aware datetime in the local timezone."""
    return datetime.now().astimezone()


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; zero-valued times read as unset."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (AttributeError, ValueError):
        return None
    if parsed.year <= 1:
        return None
    return parsed


def as_aware(value: datetime) -> datetime:
    """Treat naive datetimes as local time so they compare with aware ones."""
    if value.tzinfo is None:
        return value.astimezone()
    return value
