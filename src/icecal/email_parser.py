from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from .dates import DATE_PATTERNS, parse_date
from .ids import generate_event_id
from .models import CalendarEvent, EmailMessage, EventInfo

logger = logging.getLogger(__name__)

GENERAL_TYPE = "general"
DEFAULT_DURATION = timedelta(hours=1)
DESCRIPTION_MAX_CHARS = 200
SOURCE_EMAIL_MAX_CHARS = 500

# Checked in order, first substring hit wins, so "papir" text classifies as "pap".
WASTE_TYPES: Tuple[Tuple[str, str], ...] = (
    ("genbrugsplast", "genbrugsplast"),
    ("glas/metal", "glas_metal"),
    ("madaffald", "madaffald"),
    ("pap", "pap"),
    ("papir", "papir"),
    ("restaffald", "restaffald"),
    ("storskrald", "storskrald"),
)

WASTE_TYPE_TITLES: Tuple[Tuple[str, str], ...] = (
    ("genbrugsplast", "Genbrugsplast afhentning"),
    ("glas_metal", "Glas/metal afhentning"),
    ("madaffald", "Madaffald afhentning"),
    ("pap", "Pap afhentning"),
    ("papir", "Papir afhentning"),
    ("restaffald", "Restaffald afhentning"),
    ("storskrald", "Storskrald afhentning"),
)

_REPLY_PREFIX_RE = re.compile(r"^(re:|fw:|fwd:)\s*", re.IGNORECASE)
_DANISH_ADDRESS_RE = re.compile(r"adressen\s+([^\n.]+)", re.IGNORECASE)
LOCATION_PATTERNS = (
    re.compile(
        r"(?:\bat|@)\s+([^\n,.]+(?:room|office|building|street|avenue|drive|road|conference|zoom|teams|meet))",
        re.IGNORECASE,
    ),
    re.compile(r"location:\s*([^\n,]+)", re.IGNORECASE),
    re.compile(r"where:\s*([^\n,]+)", re.IGNORECASE),
)


def classify_waste_type(text: str) -> str:
    lowered = text.lower()
    for needle, event_type in WASTE_TYPES:
        if needle in lowered:
            return event_type
    return GENERAL_TYPE


def clean_subject(subject: str) -> str:
    """Strip any number of leading Re:/Fw:/Fwd: markers and collapse whitespace."""
    cleaned = subject
    while _REPLY_PREFIX_RE.match(cleaned):
        cleaned = _REPLY_PREFIX_RE.sub("", cleaned, count=1)
    return " ".join(cleaned.split())


def build_event_title(subject: str, event_type: str) -> str:
    for known_type, title in WASTE_TYPE_TITLES:
        if known_type == event_type:
            return title
    return clean_subject(subject)


def extract_location(text: str) -> Optional[str]:
    danish = _DANISH_ADDRESS_RE.search(text)
    if danish:
        return danish.group(1).strip().rstrip(".")

    for pattern in LOCATION_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1).strip()
    return None


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}..."


def find_event_dates(text: str, tz: ZoneInfo, now: datetime | None = None) -> List[datetime]:
    """Return the distinct instants mentioned in ``text`` in pattern priority order."""
    found: List[datetime] = []
    seen_matches = set()
    seen_instants = set()
    for name, pattern in DATE_PATTERNS:
        for match in pattern.finditer(text):
            literal = match.group(0)
            if literal in seen_matches:
                continue
            seen_matches.add(literal)

            parsed = parse_date(literal, tz, now=now)
            if parsed is None:
                logger.debug("Skipping unparseable %s match %r", name, literal)
                continue

            key = parsed.astimezone(timezone.utc).isoformat()
            if key in seen_instants:
                continue
            seen_instants.add(key)
            found.append(parsed)
    return found


def extract_event_info(subject: str, content: str, tz: ZoneInfo, now: datetime | None = None) -> List[EventInfo]:
    full_text = f"{subject} {content}"
    dates = find_event_dates(full_text, tz, now=now)
    if not dates:
        return []

    event_type = classify_waste_type(full_text)
    title = build_event_title(subject, event_type)
    location = extract_location(full_text)
    description = truncate_text(content, DESCRIPTION_MAX_CHARS)

    return [
        EventInfo(
            title=title,
            description=description,
            start=start,
            end=start + DEFAULT_DURATION,
            event_type=event_type,
            location=location,
        )
        for start in dates
    ]


class EmailEventParser:
    """Turns decoded email messages into calendar events ready for storage."""

    def __init__(self, tz: ZoneInfo, id_factory: Callable[[], str] | None = None) -> None:
        self.tz = tz
        self.id_factory = id_factory or generate_event_id

    def extract_events(self, message: EmailMessage, now: datetime | None = None) -> List[CalendarEvent]:
        created = now or datetime.now(tz=timezone.utc)
        infos = extract_event_info(message.subject, message.content, self.tz, now=created)
        source_email = f"{message.subject}\n\n{message.content[:SOURCE_EMAIL_MAX_CHARS]}"

        events: List[CalendarEvent] = []
        for info in infos:
            events.append(CalendarEvent(
                id=self.id_factory(),
                title=info.title,
                start=info.start,
                end=info.end,
                created=created,
                modified=created,
                description=info.description,
                location=info.location,
                organizer=message.sender or None,
                attendees=(message.to,) if message.to else (),
                event_type=info.event_type,
                source_email=source_email,
            ))

        logger.info("Extracted %d event(s) from %r", len(events), message.subject)
        return events
