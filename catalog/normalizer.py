"""Text normalization for event titles, dates and times."""
import logging
import re
from datetime import datetime, timezone

from dateutil import parser as dateparser

from catalog.exceptions import InvalidFormatError

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r'[^\w\s-]', re.ASCII)
_WHITESPACE_RUN = re.compile(r'\s+')
_HYPHEN_RUN = re.compile(r'-+')

_TIME_24_HOUR = re.compile(r'^(\d{1,2}):(\d{2})$', re.ASCII)
_TIME_12_HOUR = re.compile(r'^(\d{1,2}):(\d{2})\s*(AM|PM)$', re.IGNORECASE | re.ASCII)

_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def generate_slug(title: str) -> str:
    """
    Convert a free-text title into a URL-safe slug.

    Args:
        title: Event title

    Returns:
        Lowercase slug with runs of whitespace and hyphens collapsed
        into a single hyphen (e.g. "Tech Talk: AI & Future!" ->
        "tech-talk-ai-future")
    """
    slug = title.lower().strip()
    slug = _NON_SLUG_CHARS.sub('', slug)
    slug = _WHITESPACE_RUN.sub('-', slug)
    return _HYPHEN_RUN.sub('-', slug)


def normalize_date(date_str: str) -> str:
    """
    Normalize a date string to ISO 8601 calendar date (YYYY-MM-DD).

    Inputs carrying a UTC offset are converted to UTC first; naive inputs
    are taken to be UTC already. Time of day is discarded. Year, month
    and day must all come from the input.

    Args:
        date_str: Date string in any format dateutil understands

    Returns:
        ISO 8601 formatted date string

    Raises:
        InvalidFormatError: If the string cannot be parsed as a date
    """
    text = (date_str or '').strip()
    if not text:
        raise InvalidFormatError(date_str, 'date')

    try:
        parsed = dateparser.parse(text, default=_DEFAULT_A)
        # A field missing from the input takes the default's value
        if parsed.date() != dateparser.parse(text, default=_DEFAULT_B).date():
            raise ValueError('year, month and day must all be given')

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        logger.debug(f"dateutil rejected '{date_str}': {e}")
        raise InvalidFormatError(date_str, 'date') from e

    return parsed.date().isoformat()


def normalize_time(time_str: str) -> str:
    """
    Normalize a time string to 24-hour format (HH:MM).

    Accepts "H:MM"/"HH:MM" and "H:MM AM"/"HH:MM PM" (meridiem is
    case-insensitive, the space before it optional).

    Args:
        time_str: Time string

    Returns:
        24-hour formatted time string with a zero-padded hour

    Raises:
        InvalidFormatError: If the string is not a valid time of day
    """
    text = (time_str or '').strip()

    match = _TIME_24_HOUR.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            raise InvalidFormatError(time_str, 'time')
        return f"{hours:02d}:{minutes:02d}"

    match = _TIME_12_HOUR.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        period = match.group(3).upper()
        if not 1 <= hours <= 12 or minutes > 59:
            raise InvalidFormatError(time_str, 'time')

        if period == 'PM' and hours != 12:
            hours += 12
        elif period == 'AM' and hours == 12:
            hours = 0

        return f"{hours:02d}:{minutes:02d}"

    raise InvalidFormatError(time_str, 'time')
