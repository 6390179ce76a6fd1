from __future__ import annotations

import logging
from typing import List

from .config import AppConfig
from .email_parser import EmailEventParser
from .mime import parse_email_message
from .models import CalendarEvent
from .store import EventStore

logger = logging.getLogger(__name__)


def ingest_email(raw: bytes, store: EventStore, cfg: AppConfig) -> List[CalendarEvent]:
    """Decode a raw RFC 822 message, extract its events and store them."""
    message = parse_email_message(raw)
    events = EmailEventParser(cfg.tz).extract_events(message)
    if not events:
        logger.info("No dates found in %r; nothing stored", message.subject)
        return []
    return store.save_events(events)
