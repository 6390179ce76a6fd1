from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

@dataclass(frozen=True)
class EmailMessage:
    sender: str                 # bare address, "" if missing
    to: str
    subject: str
    content: str                # plain text body
    headers: Dict[str, str] = field(default_factory=dict)

@dataclass(frozen=True)
class EventInfo:
    title: str
    description: str
    start: datetime             # timezone-aware
    end: datetime               # timezone-aware
    event_type: str
    location: Optional[str] = None

@dataclass(frozen=True)
class CalendarEvent:
    id: str
    title: str
    start: datetime             # timezone-aware
    end: datetime               # timezone-aware
    created: datetime
    modified: datetime
    description: Optional[str] = None
    location: Optional[str] = None
    organizer: Optional[str] = None
    attendees: Tuple[str, ...] = ()
    event_type: Optional[str] = None
    source_email: Optional[str] = None
