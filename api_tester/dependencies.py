from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from api_tester.config import settings
from api_tester.credentials import StoreCredentialsRepository
from api_tester.db import get_session
from api_tester.sync import SessionSource, SqliteSessionSource
from shopify_admin.client import AdminApiConfig


def require_store_config(
    x_store_id: str | None = Header(default=None, alias="X-Store-Id"),
    session: Session = Depends(get_session),
) -> AdminApiConfig:
    if not x_store_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing X-Store-Id header")

    credential = StoreCredentialsRepository(session).get(x_store_id)
    if credential is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")

    return AdminApiConfig(
        store_url=credential.store_url,
        access_token=credential.admin_api_token,
        api_version=credential.api_version,
    )


def get_session_source() -> SessionSource:
    return SqliteSessionSource(settings.API_TESTER_SYNC_SOURCE_DB_PATH)
