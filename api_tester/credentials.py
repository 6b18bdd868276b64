from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from api_tester.models import StoreCredential

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_store_url(value: str) -> str:
    cleaned = _SCHEME_RE.sub("", value.strip())
    return cleaned.rstrip("/")


class StoreCredentialsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> Sequence[StoreCredential]:
        return self.session.scalars(
            select(StoreCredential).order_by(StoreCredential.updated_at.desc())
        ).all()

    def get(self, store_id: str) -> StoreCredential | None:
        return self.session.get(StoreCredential, store_id)

    def get_active(self) -> StoreCredential | None:
        return self.session.scalars(
            select(StoreCredential).where(StoreCredential.is_active.is_(True))
        ).first()

    def find_by_key(self, *, store_url: str, name: str) -> StoreCredential | None:
        return self.session.scalars(
            select(StoreCredential).where(
                StoreCredential.store_url == store_url,
                StoreCredential.name == name,
            )
        ).first()

    def add(self, credential: StoreCredential) -> StoreCredential:
        self.session.add(credential)
        self.session.commit()
        self.session.refresh(credential)
        return credential

    def upsert(
        self,
        *,
        store_url: str,
        name: str,
        update_fields: dict[str, Any],
        create_fields: dict[str, Any],
    ) -> tuple[StoreCredential, bool]:
        """Update the (store_url, name) row, or create it when absent.

        Returns the row and whether it was created. The caller commits.
        """
        credential = self.find_by_key(store_url=store_url, name=name)
        if credential is None:
            credential = StoreCredential(store_url=store_url, name=name, **create_fields)
            self.session.add(credential)
            self.session.flush()
            return credential, True

        for field, value in update_fields.items():
            setattr(credential, field, value)
        self.session.flush()
        return credential, False

    def activate(self, credential: StoreCredential) -> None:
        # Deactivate and activate in the same transaction; the partial unique
        # index rejects a concurrent second activation at commit time.
        self.session.execute(
            update(StoreCredential)
            .where(
                StoreCredential.is_active.is_(True),
                StoreCredential.id != credential.id,
            )
            .values(is_active=False)
        )
        credential.is_active = True

    def delete(self, credential: StoreCredential) -> None:
        self.session.delete(credential)
        self.session.commit()
