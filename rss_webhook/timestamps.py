"""
Timestamp parsing and serialization.

Feed publish dates and persisted watermarks are both turned into
timezone-aware datetimes so they compare on a single total order.
"""

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

logger = logging.getLogger(__name__)


def _parse_rfc2822(value: str) -> datetime | None:
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed.tzinfo is None:
        # no zone, or "-0000": UTC with unknown local offset
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_iso8601(value: str, assume_utc: bool = False) -> datetime | None:
    text = value
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        if not assume_utc:
            return None
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_publish_date(value: str | None) -> datetime | None:
    """
    Parse a feed-native publish date.

    RSS dates are RFC 2822; Atom dates are RFC 3339. Dates without an
    offset are read as UTC, the same way feedparser treats them.

    Parameters
    ----------
    value : str | None
        Raw date string from the feed.

    Returns
    -------
    datetime | None
        Offset-aware timestamp, or None if the item cannot be dated.
    """
    if not value or not value.strip():
        return None

    value = value.strip()
    parsed = _parse_rfc2822(value)
    if parsed is None:
        parsed = _parse_iso8601(value, assume_utc=True)

    if parsed is None:
        logger.debug("Unparseable publish date: %r", value[:64])
    return parsed


def format_watermark(value: datetime) -> str:
    """
    Serialize a watermark as an RFC 3339 string with offset.

    Raises
    ------
    ValueError
        If the datetime is naive.
    """
    if value.tzinfo is None:
        raise ValueError("Watermark must be timezone-aware")
    return value.isoformat()


def parse_watermark(text: str) -> datetime:
    """
    Parse a persisted watermark string.

    Raises
    ------
    ValueError
        If the text is not an RFC 3339 timestamp with an offset.
    """
    parsed = _parse_iso8601(text.strip())
    if parsed is None:
        raise ValueError(f"Invalid watermark timestamp: {text!r}")
    return parsed
