from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api_tester.credentials import StoreCredentialsRepository

logger = logging.getLogger(__name__)


class SessionSourceNotFound(RuntimeError):
    pass


@dataclass(frozen=True)
class SourceSession:
    shop: str
    access_token: str
    scope: str | None
    is_online: bool


class SessionSource(Protocol):
    def list_sessions(self) -> list[SourceSession]: ...


class SqliteSessionSource:
    """Reads the theme modifier's session table from its SQLite file, read-only."""

    _QUERY = text(
        """
        SELECT shop, access_token, scope, is_online
        FROM shop_sessions
        WHERE access_token IS NOT NULL
          AND access_token != ''
        ORDER BY shop
        """
    )

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def list_sessions(self) -> list[SourceSession]:
        if not self.path.exists():
            raise SessionSourceNotFound(f"Source database not found: {self.path}")

        engine = create_engine(
            f"sqlite:///file:{self.path.resolve().as_posix()}?mode=ro&uri=true",
            future=True,
        )
        try:
            with engine.connect() as connection:
                rows = connection.execute(self._QUERY).all()
        finally:
            engine.dispose()

        return [
            SourceSession(
                shop=row.shop,
                access_token=row.access_token,
                scope=row.scope,
                is_online=bool(row.is_online),
            )
            for row in rows
        ]


def select_session_per_shop(sessions: list[SourceSession]) -> dict[str, SourceSession]:
    """Group sessions by shop, preferring the offline one and falling back to the first."""
    grouped: dict[str, list[SourceSession]] = {}
    for session in sessions:
        if not session.access_token:
            continue
        grouped.setdefault(session.shop, []).append(session)

    selected: dict[str, SourceSession] = {}
    for shop, shop_sessions in grouped.items():
        offline = next((item for item in shop_sessions if not item.is_online), None)
        selected[shop] = offline or shop_sessions[0]
    return selected


@dataclass
class SyncOutcome:
    shop: str
    status: str
    error: str | None = None


@dataclass
class SyncReport:
    session_count: int
    outcomes: list[SyncOutcome] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def summary(self) -> str:
        imported = self.count("imported")
        updated = self.count("updated")
        return (
            f"Synced {imported + updated}/{len(self.outcomes)} stores "
            f"({imported} new, {updated} updated)"
        )


def sync_sessions(
    db: Session,
    source: SessionSource,
    *,
    app_name: str,
    api_version: str,
) -> SyncReport:
    sessions = source.list_sessions()
    selected = select_session_per_shop(sessions)
    report = SyncReport(session_count=len(sessions))
    repository = StoreCredentialsRepository(db)

    # Each shop commits on its own; a failure only rolls back that shop.
    for shop, session in selected.items():
        try:
            _, created = repository.upsert(
                store_url=shop,
                name=app_name,
                update_fields={
                    "admin_api_token": session.access_token,
                    "scopes": session.scope or "",
                },
                create_fields={
                    "admin_api_token": session.access_token,
                    "scopes": session.scope or "",
                    "api_version": api_version,
                },
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Failed to sync credentials for %s @ %s: %s", app_name, shop, exc)
            report.outcomes.append(SyncOutcome(shop=shop, status="failed", error=str(exc)))
            continue

        status = "imported" if created else "updated"
        logger.info("Synced credentials for %s @ %s (%s)", app_name, shop, status)
        report.outcomes.append(SyncOutcome(shop=shop, status=status))

    return report
