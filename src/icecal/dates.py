from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional, Pattern, Tuple
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# Default time of day for Danish waste-collection notices, which carry a date only.
COLLECTION_HOUR = 7

_WEEKDAYS_DA = "mandag|tirsdag|onsdag|torsdag|fredag|lørdag|søndag"
_WEEKDAYS_EN = "monday|tuesday|wednesday|thursday|friday|saturday|sunday"
_MONTHS_EN = "january|february|march|april|may|june|july|august|september|october|november|december"

# Most specific first; extraction walks this table strictly in order.
DATE_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    # "mandag d.07-07-2025"
    ("danish_weekday", re.compile(rf"(?:{_WEEKDAYS_DA})\s+d\.(\d{{2}}-\d{{2}}-\d{{4}})", re.IGNORECASE)),
    # "d. 07-07-2025", "d.07-07-2025"
    ("danish_date", re.compile(r"\bd\.?\s*(\d{2}-\d{2}-\d{4})\b", re.IGNORECASE)),
    # "January 15, 2024 at 3:00 PM"
    (
        "english_month",
        re.compile(
            rf"(?:{_MONTHS_EN})\s+\d{{1,2}},?\s+\d{{4}}(?:\s+at\s+\d{{1,2}}:\d{{2}}\s*(?:am|pm))?",
            re.IGNORECASE,
        ),
    ),
    # "2024-01-15 15:00", "01/15/2024 3:00 PM"
    (
        "numeric",
        re.compile(
            r"\d{4}(?:-\d{2}){2}\s+\d{1,2}:\d{2}|(?:\d{1,2}/){2}\d{4}\s+\d{1,2}:\d{2}\s*(?:am|pm)?",
            re.IGNORECASE,
        ),
    ),
    # "Monday, January 15th at 3 PM"
    (
        "english_weekday",
        re.compile(
            rf"(?:{_WEEKDAYS_EN}),?\s+(?:{_MONTHS_EN})\s+\d{{1,2}}(?:st|nd|rd|th)?\s+(?:at\s+)?\d{{1,2}}(?::\d{{2}})?\s*(?:am|pm)?",
            re.IGNORECASE,
        ),
    ),
)

_DANISH_DATE_RE = re.compile(r"(\d{2})-(\d{2})-(\d{4})")
_AT_RE = re.compile(r"\s+at\s+", re.IGNORECASE)
_AMPM_RE = re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)", re.IGNORECASE)
_HOUR_AMPM_RE = re.compile(r"(?<![\d:])(\d{1,2})\s*(am|pm)\b", re.IGNORECASE)
# A lone hour closing the expression, as in "Monday, January 15th at 3".
_BARE_HOUR_RE = re.compile(r"(?<=\s)(\d{1,2})\s*$")


def _clock(hour: int, minutes: str, meridiem: str) -> str:
    meridiem = meridiem.lower()
    if meridiem == "pm" and hour != 12:
        hour += 12
    if meridiem == "am" and hour == 12:
        hour = 0
    return f"{hour:02d}:{minutes}:00"


def normalize_time_text(text: str) -> str:
    """Drop the first "at" and spell the time out as 24-hour "HH:MM:00".

    Handles "3:15 pm", "3 pm" and a trailing bare hour ("... 15th 3"), which
    dateutil would otherwise read as a two-digit year.
    """
    text = _AT_RE.sub(" ", text, count=1)
    text, replaced = _AMPM_RE.subn(lambda m: _clock(int(m.group(1)), m.group(2), m.group(3)), text, count=1)
    if replaced:
        return text
    text, replaced = _HOUR_AMPM_RE.subn(lambda m: _clock(int(m.group(1)), "00", m.group(2)), text, count=1)
    if replaced:
        return text
    return _BARE_HOUR_RE.sub(lambda m: f"{int(m.group(1)):02d}:00:00", text, count=1)


def _parse_danish(match: re.Match, tz: ZoneInfo) -> Optional[datetime]:
    day, month, year = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day, COLLECTION_HOUR, 0, tzinfo=tz)
    except ValueError:
        return None


def parse_date(text: str, tz: ZoneInfo, now: datetime | None = None) -> Optional[datetime]:
    """Turn one matched date expression into an aware datetime.

    Danish ``DD-MM-YYYY`` dates become 07:00 local time. Anything else goes
    through ``dateutil`` after the "at"/AM-PM clean-up; fields the text leaves
    out (typically the year) come from ``now``. Returns None instead of raising.
    """
    danish = _DANISH_DATE_RE.search(text)
    if danish:
        return _parse_danish(danish, tz)

    normalized = normalize_time_text(text)
    local_now = (now or datetime.now(tz=tz)).astimezone(tz)
    default = local_now.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
    try:
        parsed = date_parser.parse(normalized, default=default)
    except (ValueError, OverflowError) as exc:
        logger.debug("Could not parse date %r: %s", text, exc)
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)
