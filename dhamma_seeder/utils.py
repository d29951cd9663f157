"""
Utility functions for the Dhamma seeder.

Contains helpers for parsing dates, cleaning names and splitting tag strings.
"""

import re
import datetime
from typing import Iterator, List, Optional, Sequence, TypeVar
from dateutil import parser as dateutil_parser

from .config.constants import MAX_NAME_LENGTH

T = TypeVar("T")

_WHITESPACE_RE = re.compile(r"\s+")
_TAG_SPLIT_RE = re.compile(r"[,;\n]+")
_SLUG_STRIP_RE = re.compile(r"[!-,./:-@\[-`{-~]")


def parse_datetime_string(date_str: Optional[str]) -> Optional[datetime.datetime]:
    """Parse a date string into a timezone-aware datetime; naive values are taken as UTC."""
    if not date_str or not str(date_str).strip():
        return None
    try:
        dt = dateutil_parser.parse(str(date_str).strip())
    except (ValueError, TypeError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def parse_date_string(date_str: Optional[str]) -> Optional[datetime.date]:
    """Parse a date string down to a calendar date (for DATE columns)."""
    if not date_str or not str(date_str).strip():
        return None
    try:
        return dateutil_parser.parse(str(date_str).strip()).date()
    except (ValueError, TypeError, OverflowError):
        return None


def clean_name(value: Optional[str]) -> Optional[str]:
    """Trim, collapse whitespace and cap length; empty names become None."""
    if value is None:
        return None
    cleaned = _WHITESPACE_RE.sub(" ", str(value)).strip()
    if not cleaned:
        return None
    return cleaned[:MAX_NAME_LENGTH].rstrip()


def split_tags(value: Optional[str]) -> List[str]:
    """Split a tag string on commas, semicolons or newlines, de-duplicated in order."""
    if not value:
        return []
    seen = set()
    tags = []
    for part in _TAG_SPLIT_RE.split(value):
        name = clean_name(part)
        if name and name not in seen:
            seen.add(name)
            tags.append(name)
    return tags


def slugify(name: str) -> str:
    """Lower-case, dash-separated slug; non-ASCII letters (Myanmar, Pali diacritics) are kept."""
    slug = _SLUG_STRIP_RE.sub("", name.strip().lower())
    slug = _WHITESPACE_RE.sub("-", slug.strip())
    return re.sub(r"-{2,}", "-", slug).strip("-")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most size items."""
    if size <= 0:
        raise ValueError("size must be positive")
    for start in range(0, len(items), size):
        yield items[start:start + size]
