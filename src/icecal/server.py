from __future__ import annotations

import json
import logging
import os
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

from .config import AppConfig, load_config
from .ical import generate_feed
from .ingest import ingest_email
from .response import build_calendar_response
from .store import EventStore, StoreError

logger = logging.getLogger(__name__)


def _feed_address(path: str) -> Tuple[bool, Optional[str]]:
    """Map a request path to (is_feed, address)."""
    parts = urlsplit(path)
    if parts.path == "/calendar.ics":
        values = parse_qs(parts.query).get("address", [])
        address = values[0].strip() if values else ""
        return True, address or None
    if parts.path.startswith("/calendar/") and parts.path.endswith(".ics"):
        address = unquote(parts.path[len("/calendar/"):-len(".ics")]).strip()
        return True, address or None
    return False, None


class CalendarRequestHandler(BaseHTTPRequestHandler):
    config: AppConfig | None = None
    ingest_token: str | None = None
    store_factory: Callable[[AppConfig], EventStore] = staticmethod(lambda cfg: EventStore(cfg.storage.path))
    ingest: Callable[..., Any] = staticmethod(ingest_email)

    def _send_json(self, status: int, payload: dict[str, Any]) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _check_auth(self) -> bool:
        if not self.ingest_token:
            return True
        provided = self.headers.get("X-Ingest-Token", "")
        return provided == self.ingest_token

    def _read_body(self) -> bytes:
        content_length = int(self.headers.get("Content-Length", "0"))
        return self.rfile.read(content_length) if content_length else b""

    def _config(self) -> AppConfig:
        return self.config or load_config()

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:  # noqa: N802
        if urlsplit(self.path).path == "/health":
            self._send_json(HTTPStatus.OK, {"ok": True})
            return

        is_feed, address = _feed_address(self.path)
        if not is_feed:
            self._send_json(HTTPStatus.NOT_FOUND, {"error": "not_found"})
            return

        cfg = self._config()
        try:
            ical_text = generate_feed(self.store_factory(cfg), cfg, address)
        except StoreError as exc:
            logger.error("Feed generation failed: %s", exc)
            self._send_json(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": str(exc)})
            return

        response = build_calendar_response(ical_text, address)
        body = response.encoded_body()
        self.send_response(response.status)
        for key, value in response.headers.items():
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_POST(self) -> None:  # noqa: N802
        if not self._check_auth():
            self._send_json(HTTPStatus.UNAUTHORIZED, {"error": "unauthorized"})
            return

        if urlsplit(self.path).path != "/email":
            self._send_json(HTTPStatus.NOT_FOUND, {"error": "not_found"})
            return

        raw = self._read_body()
        if not raw:
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": "empty message body"})
            return

        cfg = self._config()
        try:
            events = self.ingest(raw, self.store_factory(cfg), cfg)
        except (ValueError, LookupError) as exc:
            logger.warning("Rejected email: %s", exc)
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": str(exc)})
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Ingest failed")
            self._send_json(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": str(exc)})
            return

        self._send_json(HTTPStatus.OK, {"events": len(events), "ids": [e.id for e in events]})


def run_server(config: AppConfig, host: str | None = None, port: int | None = None) -> None:
    host = host or config.server.host
    port = port or config.server.port
    CalendarRequestHandler.config = config
    CalendarRequestHandler.ingest_token = os.environ.get("ICECAL_INGEST_TOKEN")
    server = ThreadingHTTPServer((host, port), CalendarRequestHandler)
    print(f"icecal feed server listening on http://{host}:{port}")
    server.serve_forever()
