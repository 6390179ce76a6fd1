from __future__ import annotations
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List
import json
import logging
import os
import tempfile
import threading

from .models import CalendarEvent

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ("start", "end", "created", "modified")

# One lock per event file, shared by every EventStore pointing at it.
_PATH_LOCKS: Dict[str, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _PATH_LOCKS_GUARD:
        return _PATH_LOCKS.setdefault(key, threading.Lock())


class StoreError(RuntimeError):
    """Raised when the event file cannot be read or written."""


def _event_to_dict(event: CalendarEvent) -> Dict[str, Any]:
    data = asdict(event)
    for key in _DATETIME_FIELDS:
        data[key] = data[key].isoformat()
    data["attendees"] = list(event.attendees)
    return data


def _event_from_dict(data: Dict[str, Any]) -> CalendarEvent:
    return CalendarEvent(
        id=str(data["id"]),
        title=str(data.get("title", "")),
        start=datetime.fromisoformat(data["start"]),
        end=datetime.fromisoformat(data["end"]),
        created=datetime.fromisoformat(data["created"]),
        modified=datetime.fromisoformat(data["modified"]),
        description=data.get("description"),
        location=data.get("location"),
        organizer=data.get("organizer"),
        attendees=tuple(data.get("attendees") or ()),
        event_type=data.get("event_type"),
        source_email=data.get("source_email"),
    )


class EventStore:
    """Events persisted as a single JSON document."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> List[CalendarEvent]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [_event_from_dict(item) for item in data.get("events", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StoreError(f"Could not read events from {self.path}: {exc}") from exc

    def _write(self, events: List[CalendarEvent]) -> None:
        payload = json.dumps({"events": [_event_to_dict(e) for e in events]}, indent=2, ensure_ascii=False)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".events-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Could not write events to {self.path}: {exc}") from exc

    def get_all_events(self) -> List[CalendarEvent]:
        return sorted(self._load(), key=lambda e: e.start)

    def get_events_by_address(self, address: str) -> List[CalendarEvent]:
        needle = " ".join(address.lower().split())
        return [
            e for e in self.get_all_events()
            if e.location and needle in " ".join(e.location.lower().split())
        ]

    def save_events(self, events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
        new_events = list(events)
        if not new_events:
            return []
        replaced_ids = {e.id for e in new_events}
        with _lock_for(self.path):
            kept = [e for e in self._load() if e.id not in replaced_ids]
            self._write(kept + new_events)
        logger.info("Stored %d event(s) in %s", len(new_events), self.path)
        return new_events
