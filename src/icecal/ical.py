from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .models import CalendarEvent

logger = logging.getLogger(__name__)

PRODID = "-//Ice Calendar Worker//EN"
CRLF = "\r\n"
CALENDAR_FOOTER = "END:VCALENDAR"


def format_ical_datetime(dt: datetime) -> str:
    """Render an aware datetime as UTC basic format, e.g. 20250707T050000Z."""
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_ical_text(text: str) -> str:
    # Backslash must go first so the escapes added below are not doubled.
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def generate_calendar_header(name: str, description: str, address: Optional[str] = None) -> List[str]:
    cal_name = f"{name} - {address}" if address else name
    cal_desc = f"{description} for {address}" if address else description
    return [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{cal_name}",
        f"X-WR-CALDESC:{cal_desc}",
    ]


def generate_event_block(event: CalendarEvent, now: datetime) -> List[str]:
    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.id}",
        f"DTSTAMP:{format_ical_datetime(now)}",
        f"DTSTART:{format_ical_datetime(event.start)}",
        f"DTEND:{format_ical_datetime(event.end)}",
        f"CREATED:{format_ical_datetime(event.created)}",
        f"LAST-MODIFIED:{format_ical_datetime(event.modified)}",
        "STATUS:CONFIRMED",
        f"SUMMARY:{escape_ical_text(event.title)}",
    ]

    if event.description:
        lines.append(f"DESCRIPTION:{escape_ical_text(event.description)}")
    if event.location:
        lines.append(f"LOCATION:{escape_ical_text(event.location)}")
    if event.organizer:
        lines.append(f"ORGANIZER:mailto:{event.organizer}")
    for attendee in event.attendees:
        if attendee:
            lines.append(f"ATTENDEE:mailto:{attendee}")

    lines.append("END:VEVENT")
    return lines


def generate_icalendar(
    events: Iterable[CalendarEvent],
    name: str,
    description: str,
    address: Optional[str] = None,
    now: datetime | None = None,
) -> str:
    stamp = now or datetime.now(tz=timezone.utc)
    lines = generate_calendar_header(name, description, address)
    count = 0
    for event in events:
        lines.extend(generate_event_block(event, stamp))
        count += 1
    lines.append(CALENDAR_FOOTER)
    logger.debug("Serialized %d event(s) for address=%r", count, address)
    return CRLF.join(lines) + CRLF


def generate_feed(store, config, address: Optional[str] = None, now: datetime | None = None) -> str:
    """Load events from ``store`` (all, or those at ``address``) and serialize them."""
    if address:
        events = store.get_events_by_address(address)
    else:
        events = store.get_all_events()
    return generate_icalendar(
        events,
        name=config.calendar.name,
        description=config.calendar.description,
        address=address,
        now=now,
    )
