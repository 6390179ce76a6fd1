from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from .config import CONFIG_PATH_DEFAULT, AppConfig, load_config
from .ical import generate_feed
from .ingest import ingest_email
from .response import calendar_filename
from .server import run_server
from .store import EventStore


def _cmd_ingest(cfg: AppConfig, args: argparse.Namespace) -> None:
    store = EventStore(cfg.storage.path)
    total = 0
    for path in args.files:
        events = ingest_email(Path(path).read_bytes(), store, cfg)
        print(f"{path}: {len(events)} event(s)")
        for e in events:
            print(f"  {e.start.isoformat()}  {e.title}" + (f"  @ {e.location}" if e.location else ""))
        total += len(events)
    print(f"Stored {total} event(s) in {cfg.storage.path}")


def _cmd_export(cfg: AppConfig, args: argparse.Namespace) -> None:
    ical_text = generate_feed(EventStore(cfg.storage.path), cfg, args.address)
    output = args.output or calendar_filename(args.address)
    if output == "-":
        print(ical_text, end="")
        return
    Path(output).write_text(ical_text, encoding="utf-8", newline="")
    print(f"Wrote {output}")


def main(argv: List[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="Extract calendar events from emails and publish them as iCalendar")
    ap.add_argument("--config", default=CONFIG_PATH_DEFAULT)
    ap.add_argument("--verbose", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Extract and store events from .eml files")
    ingest.add_argument("files", nargs="+")

    export = sub.add_parser("export", help="Write stored events as an .ics feed")
    export.add_argument("--address")
    export.add_argument("--output", help="Target file, '-' for stdout")

    serve = sub.add_parser("serve", help="Serve the feed and accept emails over HTTP")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()
    cfg = load_config(args.config)

    if args.command == "ingest":
        _cmd_ingest(cfg, args)
        return

    if args.command == "export":
        _cmd_export(cfg, args)
        return

    if args.command == "serve":
        run_server(cfg, host=args.host, port=args.port)
        return


if __name__ == "__main__":
    main()
