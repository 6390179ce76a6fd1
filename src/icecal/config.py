from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict
from zoneinfo import ZoneInfo
import os

import yaml

CONFIG_PATH_DEFAULT = "/etc/icecal/config.yaml"

@dataclass
class CalendarConfig:
    name: str
    description: str

@dataclass
class StorageConfig:
    path: str

@dataclass
class ServerConfig:
    host: str
    port: int

@dataclass
class AppConfig:
    timezone: str
    calendar: CalendarConfig
    storage: StorageConfig
    server: ServerConfig

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

def load_config(path: str | None = None) -> AppConfig:
    data: Dict[str, Any] = {}
    if path:
        p = Path(path)
        if p.exists():
            loaded = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"Config file {path} must contain a mapping")
            data = loaded

    calendar = data.get("calendar", {})
    storage = data.get("storage", {})
    server = data.get("server", {})

    return AppConfig(
        timezone=os.environ.get("ICECAL_TIMEZONE") or str(data.get("timezone", "Europe/Copenhagen")),
        calendar=CalendarConfig(
            name=os.environ.get("ICECAL_CALENDAR_NAME") or str(calendar.get("name", "Affaldskalender")),
            description=os.environ.get("ICECAL_CALENDAR_DESCRIPTION")
            or str(calendar.get("description", "Events extracted from email")),
        ),
        storage=StorageConfig(
            path=os.environ.get("ICECAL_STORE_PATH") or str(storage.get("path", "/var/lib/icecal/events.json")),
        ),
        server=ServerConfig(
            host=str(server.get("host", "127.0.0.1")),
            port=int(server.get("port", 8787)),
        ),
    )
