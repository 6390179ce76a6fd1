from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_-]")


@dataclass(frozen=True)
class CalendarResponse:
    body: str
    headers: Dict[str, str] = field(default_factory=dict)
    status: int = 200

    def encoded_body(self) -> bytes:
        return self.body.encode("utf-8")


def sanitize_filename(value: str) -> str:
    """Replace everything outside [A-Za-z0-9_-] with an underscore."""
    return _UNSAFE_FILENAME_RE.sub("_", value)


def calendar_filename(address: Optional[str] = None) -> str:
    if address:
        return f"calendar-{sanitize_filename(address)}.ics"
    return "calendar.ics"


def build_calendar_response(ical_text: str, address: Optional[str] = None) -> CalendarResponse:
    return CalendarResponse(
        body=ical_text,
        headers={
            "Content-Type": "text/calendar; charset=utf-8",
            "Content-Disposition": f'attachment; filename="{calendar_filename(address)}"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )
