"""Import Shopify sessions from the theme modifier database into the API tester.

Usage:
    python -m api_tester.import_credentials [--source PATH] [--app-name NAME] [--dry-run] [--list]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from api_tester.config import settings
from api_tester.db import init_db, session_scope
from api_tester.sync import (
    SessionSourceNotFound,
    SqliteSessionSource,
    select_session_per_shop,
    sync_sessions,
)


def _token_preview(token: str) -> str:
    return f"{token[:12]}..."


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import Shopify credentials from a session database.")
    parser.add_argument(
        "--source",
        type=Path,
        default=settings.API_TESTER_SYNC_SOURCE_DB_PATH,
        help="Path to the source SQLite database.",
    )
    parser.add_argument(
        "--app-name",
        default=settings.API_TESTER_SYNC_APP_NAME,
        help="Name used for the imported credentials.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Show what would be imported without writing.")
    parser.add_argument("--list", action="store_true", help="Only list sessions found in the source database.")
    args = parser.parse_args(argv)

    source = SqliteSessionSource(args.source)
    try:
        sessions = source.list_sessions()
    except SessionSourceNotFound as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(f"Source: {args.source}")
    print(f"App name: {args.app_name}")
    if not sessions:
        print("No sessions with access tokens found in source database.")
        return 0

    print(f"Found {len(sessions)} session(s) with access tokens:")
    for session in sessions:
        kind = "online" if session.is_online else "offline"
        print(f"  {session.shop}: {kind} session {_token_preview(session.access_token)} (scopes: {session.scope or 'N/A'})")

    if args.list:
        return 0

    if args.dry_run:
        print("DRY RUN: would import the following credentials:")
        for shop in select_session_per_shop(sessions):
            print(f"  - {args.app_name} @ {shop}")
        return 0

    init_db()
    with session_scope() as db:
        report = sync_sessions(
            db,
            source,
            app_name=args.app_name,
            api_version=settings.API_TESTER_DEFAULT_API_VERSION,
        )

    for outcome in report.outcomes:
        line = f"  {outcome.status}: {args.app_name} @ {outcome.shop}"
        if outcome.error:
            line = f"{line} ({outcome.error})"
        print(line)
    print(
        f"Summary: {report.count('imported')} imported, {report.count('updated')} updated, "
        f"{report.count('failed')} failed"
    )
    return 1 if report.count("failed") else 0


if __name__ == "__main__":
    raise SystemExit(main())
