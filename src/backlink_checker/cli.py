"""Command line interface for checking backlinks."""
from __future__ import annotations

import argparse
import json
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

from .config import Settings, configure_logging
from .db import add_backlink, get_connection, init_db, list_backlinks, save_check
from .models import BacklinkRecord, InvalidRecordError
from .report import render_batch_summary, render_result
from .scheduling import run_batch
from .verifier import BacklinkVerifier


@contextmanager
def _cancel_on_sigterm() -> Iterator[threading.Event]:
    """Yield an event that is set when the process receives SIGTERM."""
    cancel = threading.Event()
    try:
        previous = signal.signal(signal.SIGTERM, lambda *_: cancel.set())
    except ValueError:  # not on the main thread
        yield cancel
        return
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGTERM, previous)


def _add_placement_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("live_link", help="Page where the backlink is expected")
    parser.add_argument("target_url", help="URL the backlink should point to")
    parser.add_argument("target_anchor", help="Expected anchor text of the backlink")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify that backlinks are still live")
    parser.add_argument("--log-level", help="Logging level (defaults to LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check a single placement without storing it")
    _add_placement_arguments(check)
    check.add_argument("--json", action="store_true", help="Print the result as JSON")

    add = subparsers.add_parser("add", help="Register a placement in the database")
    _add_placement_arguments(add)
    add.add_argument("--db", type=Path, help="SQLite database path (defaults to BACKLINK_DB_PATH)")

    recheck = subparsers.add_parser("recheck", help="Check every stored placement that is due")
    recheck.add_argument("--db", type=Path, help="SQLite database path (defaults to BACKLINK_DB_PATH)")
    recheck.add_argument(
        "--force-all",
        action="store_true",
        help="Check every stored placement regardless of when it was last checked",
    )
    recheck.add_argument("--limit", type=int, help="Maximum number of placements to check")
    recheck.add_argument("--workers", type=int, help="Concurrent fetches (1-8)")
    recheck.add_argument(
        "--time-budget",
        type=float,
        help="Stop starting new checks after this many seconds",
    )
    recheck.add_argument("--json", action="store_true", help="Print the summary as JSON")
    return parser


def _run_check(args: argparse.Namespace, settings: Settings) -> int:
    record = BacklinkRecord(
        live_link=args.live_link.strip(),
        target_url=args.target_url.strip(),
        target_anchor=args.target_anchor.strip(),
    )
    verifier = BacklinkVerifier(fetcher=settings.build_fetcher())
    try:
        result = verifier.verify(record)
    finally:
        verifier.fetcher.close()

    if args.json:
        print(json.dumps(result.as_dict(), indent=2))
    else:
        print(render_result(record, result))
    return 0 if result.link_found else 1


def _run_add(args: argparse.Namespace, settings: Settings) -> int:
    conn = get_connection(args.db or settings.db_path)
    try:
        init_db(conn)
        backlink_id = add_backlink(conn, args.live_link, args.target_url, args.target_anchor)
    finally:
        conn.close()
    print(f"Added backlink {backlink_id}")
    return 0


def _run_recheck(args: argparse.Namespace, settings: Settings) -> int:
    conn = get_connection(args.db or settings.db_path)
    verifier = BacklinkVerifier(fetcher=settings.build_fetcher())
    try:
        init_db(conn)
        policy = settings.recheck_policy()
        limit = args.limit if args.limit is not None else settings.batch_limit
        records = policy.select_due(list_backlinks(conn), limit=limit, force_all=args.force_all)
        with _cancel_on_sigterm() as cancel:
            summary = run_batch(
                records,
                verifier,
                on_result=lambda record, _result: save_check(conn, record),
                workers=args.workers or settings.workers,
                time_budget=args.time_budget,
                cancel_event=cancel,
            )
    finally:
        verifier.fetcher.close()
        conn.close()

    if args.json:
        print(json.dumps(summary.as_dict(), indent=2))
    else:
        print(render_batch_summary(summary))
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "check":
            return _run_check(args, settings)
        if args.command == "add":
            return _run_add(args, settings)
        return _run_recheck(args, settings)
    except InvalidRecordError as exc:
        parser.error(str(exc))
    return 2  # pragma: no cover - parser.error exits


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    raise SystemExit(main())
