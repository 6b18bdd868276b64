from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from api_tester.config import settings
from api_tester.db import get_session
from api_tester.dependencies import get_session_source
from api_tester.schemas import SyncShopResult, SyncTokenResponse
from api_tester.sync import SessionSource, SessionSourceNotFound, sync_sessions

router = APIRouter(prefix="/api", tags=["sync"])


@router.post("/sync-token", response_model=SyncTokenResponse, response_model_exclude_none=True)
def sync_token(
    session: Session = Depends(get_session),
    source: SessionSource = Depends(get_session_source),
):
    try:
        report = sync_sessions(
            session,
            source,
            app_name=settings.API_TESTER_SYNC_APP_NAME,
            api_version=settings.API_TESTER_DEFAULT_API_VERSION,
        )
    except SessionSourceNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    if not report.outcomes:
        return SyncTokenResponse(
            success=False,
            error="No sessions found. Install the app in a store first.",
        )

    return SyncTokenResponse(
        success=True,
        message=report.summary,
        results=[
            SyncShopResult(shop=outcome.shop, status=outcome.status, error=outcome.error)
            for outcome in report.outcomes
        ],
    )
