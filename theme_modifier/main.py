from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from urllib.parse import urlencode
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.responses import HTMLResponse, ORJSONResponse, RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.staticfiles import StaticFiles
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from shopify_admin.client import (
    AdminApiConfig,
    ShopifyAdminClient,
    ShopifyApiError,
    collect_user_errors,
)
from theme_modifier.config import settings
from theme_modifier.content import build_data, render_content
from theme_modifier.db import get_session, init_db
from theme_modifier.models import OAuthState, ShopSession, offline_session_id
from theme_modifier.registration import ApiTesterRegistrationClient
from theme_modifier.schemas import (
    AppOverviewResponse,
    InstallCallbackResponse,
    ThemeActionRequest,
    ThemeSummary,
)
from theme_modifier.security import (
    normalize_shop_domain,
    verify_app_proxy_signature,
    verify_oauth_hmac,
    verify_session_token,
    verify_webhook_hmac,
)

logger = logging.getLogger(__name__)

_STATIC_DIR = Path(__file__).resolve().parent / "static"
_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
_STOREFRONT_CACHE_HEADERS = {**_CORS_HEADERS, "Cache-Control": "public, max-age=60"}

shopify_api = ShopifyAdminClient(timeout=settings.SHOPIFY_REQUEST_TIMEOUT_SECONDS)
api_tester_registration = ApiTesterRegistrationClient()


@asynccontextmanager
async def _app_lifespan(_app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


app = FastAPI(
    title="Theme Modifier App",
    default_response_class=ORJSONResponse,
    lifespan=_app_lifespan,
)
app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


def _build_shopify_oauth_url(*, shop_domain: str, state: str) -> str:
    query = urlencode(
        {
            "client_id": settings.SHOPIFY_APP_API_KEY,
            "scope": settings.SHOPIFY_APP_SCOPES,
            "redirect_uri": f"{settings.app_base_url}/auth/callback",
            "state": state,
        }
    )
    return f"https://{shop_domain}/admin/oauth/authorize?{query}"


def _admin_config(shop_session: ShopSession) -> AdminApiConfig:
    return AdminApiConfig(
        store_url=shop_session.shop,
        access_token=shop_session.access_token,
        api_version=settings.SHOPIFY_ADMIN_API_VERSION,
    )


def _split_scopes(scopes_csv: str | None) -> list[str]:
    return [scope.strip() for scope in (scopes_csv or "").split(",") if scope.strip()]


@app.get("/auth/install")
def auth_install(shop: str, session: Session = Depends(get_session)):
    shop_domain = normalize_shop_domain(shop)
    state = uuid4().hex
    session.add(OAuthState(state=state, shop_domain=shop_domain))
    session.commit()

    return RedirectResponse(url=_build_shopify_oauth_url(shop_domain=shop_domain, state=state), status_code=302)


@app.get("/auth/callback", response_model=InstallCallbackResponse)
async def auth_callback(request: Request, session: Session = Depends(get_session)):
    query_items = list(request.query_params.multi_items())
    if not verify_oauth_hmac(query_items):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OAuth HMAC")

    shop = request.query_params.get("shop")
    code = request.query_params.get("code")
    state_value = request.query_params.get("state")
    if not shop or not code or not state_value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required OAuth callback params: shop, code, state",
        )

    shop_domain = normalize_shop_domain(shop)
    oauth_state = session.get(OAuthState, state_value)
    if not oauth_state:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OAuth state")
    if oauth_state.shop_domain != shop_domain:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="OAuth state does not match the shop domain",
        )

    try:
        access_token, scopes_csv = await shopify_api.exchange_code_for_access_token(
            shop_domain=shop_domain,
            client_id=settings.SHOPIFY_APP_API_KEY,
            client_secret=settings.SHOPIFY_APP_API_SECRET,
            code=code,
        )
    except ShopifyApiError as exc:
        session.rollback()
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    shop_session = session.get(ShopSession, offline_session_id(shop_domain))
    if shop_session is None:
        shop_session = ShopSession(
            id=offline_session_id(shop_domain),
            shop=shop_domain,
            state=state_value,
            is_online=False,
            scope=scopes_csv,
            access_token=access_token,
        )
        session.add(shop_session)
    else:
        shop_session.state = state_value
        shop_session.scope = scopes_csv
        shop_session.access_token = access_token
        shop_session.updated_at = datetime.now(timezone.utc)
    session.delete(oauth_state)
    session.commit()
    logger.info("Stored offline session for %s", shop_domain)

    registered = await api_tester_registration.register(shop_session)

    return InstallCallbackResponse(
        shopDomain=shop_domain,
        scopes=_split_scopes(scopes_csv),
        registeredWithApiTester=registered,
    )


bearer_scheme = HTTPBearer(auto_error=False)


def require_installed_shop(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> ShopSession:
    """Resolve the embedded admin request to its shop through the App Bridge session token."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer session token")

    shop_domain = verify_session_token(credentials.credentials)
    shop_session = session.get(ShopSession, offline_session_id(shop_domain))
    if shop_session is None or not shop_session.access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Shop is not installed. Start OAuth at /auth/install?shop={shop_domain}",
        )
    return shop_session


async def _load_themes(shop_session: ShopSession, *, first: int) -> list[ThemeSummary]:
    try:
        result = await shopify_api.list_themes(_admin_config(shop_session), first=first)
    except ShopifyApiError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    if result.get("errors"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "GraphQL errors", "errors": result["errors"]},
        )
    nodes = ((result.get("data") or {}).get("themes") or {}).get("nodes") or []
    return [ThemeSummary.model_validate(node) for node in nodes]


@app.get("/app", response_model=AppOverviewResponse)
async def app_overview(shop_session: ShopSession = Depends(require_installed_shop)):
    themes = await _load_themes(shop_session, first=5)
    live_theme = next((theme for theme in themes if theme.role == "MAIN"), None)
    return AppOverviewResponse(shop=shop_session.shop, themes=themes, liveTheme=live_theme)


@app.get("/app/themes")
async def app_themes(shop_session: ShopSession = Depends(require_installed_shop)):
    themes = await _load_themes(shop_session, first=20)
    return {"themes": [theme.model_dump() for theme in themes]}


def _action_failure(action: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "action": action, **extra}


@app.post("/app/themes")
async def app_theme_action(
    payload: ThemeActionRequest,
    shop_session: ShopSession = Depends(require_installed_shop),
):
    action = payload.actionType
    if action not in {"getFiles", "getFile", "upsertFile", "deleteFile"}:
        return {"success": False, "error": "Unknown action"}
    if not payload.themeId:
        return _action_failure(action, error="themeId is required")
    if action != "getFiles" and not payload.filename:
        return _action_failure(action, error="filename is required")

    config = _admin_config(shop_session)
    try:
        if action == "getFiles":
            result = await shopify_api.get_theme_files(config, theme_id=payload.themeId)
        elif action == "getFile":
            result = await shopify_api.get_file_content(
                config, theme_id=payload.themeId, filename=payload.filename
            )
        elif action == "upsertFile":
            result = await shopify_api.upsert_file(
                config,
                theme_id=payload.themeId,
                filename=payload.filename,
                content=payload.content or "",
            )
        else:
            result = await shopify_api.delete_file(config, theme_id=payload.themeId, filename=payload.filename)
    except ShopifyApiError as exc:
        logger.warning("Theme action %s failed for %s: %s", action, shop_session.shop, exc)
        return _action_failure(action, error=str(exc))

    if result.get("errors"):
        return _action_failure(action, errors=result["errors"])

    data = result.get("data") or {}
    if action == "getFiles":
        return {"success": True, "action": action, "theme": data.get("theme")}
    if action == "getFile":
        nodes = ((data.get("theme") or {}).get("files") or {}).get("nodes") or []
        return {"success": True, "action": action, "file": nodes[0] if nodes else None}
    if action == "upsertFile":
        user_errors = collect_user_errors(data, "themeFilesUpsert")
        if user_errors:
            return _action_failure(action, errors=user_errors)
        return {
            "success": True,
            "action": action,
            "upsertedFiles": (data.get("themeFilesUpsert") or {}).get("upsertedThemeFiles"),
        }

    user_errors = collect_user_errors(data, "themeFilesDelete")
    if user_errors:
        return _action_failure(action, errors=user_errors)
    return {
        "success": True,
        "action": action,
        "deletedFiles": (data.get("themeFilesDelete") or {}).get("deletedThemeFiles"),
    }


@app.get("/api/content", response_class=HTMLResponse)
def storefront_content(variant: str = "default"):
    logger.info("Storefront content requested, variant=%s", variant)
    return HTMLResponse(render_content(variant), headers=_STOREFRONT_CACHE_HEADERS)


@app.get("/api/data")
def storefront_data(data_type: str = Query(default="general", alias="type")):
    logger.info("Storefront data requested, type=%s", data_type)
    return ORJSONResponse(build_data(data_type), headers=_STOREFRONT_CACHE_HEADERS)


@app.options("/api/content")
@app.options("/api/data")
def storefront_preflight():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=_CORS_HEADERS)


def require_app_proxy_signature(request: Request) -> None:
    if not settings.APP_PROXY_VERIFY_SIGNATURE:
        return
    if not verify_app_proxy_signature(list(request.query_params.multi_items())):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid app proxy signature")


@app.get("/app-proxy/{path:path}", dependencies=[Depends(require_app_proxy_signature)])
def app_proxy(path: str, request: Request):
    logger.info("App proxy request: %s", path)
    params = request.query_params
    if path == "content":
        return HTMLResponse(render_content(params.get("variant", "default"), via_proxy=True))
    if path == "data":
        return build_data(params.get("type", "general"), via_proxy=True)
    if path == "health":
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
    return ORJSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Not found", "path": path})


@app.post("/app-proxy/{path:path}", dependencies=[Depends(require_app_proxy_signature)])
def app_proxy_post(path: str):
    logger.info("App proxy POST request: %s", path)
    return {
        "success": True,
        "message": "POST received",
        "path": path,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/webhooks/app/uninstalled")
async def app_uninstalled_webhook(request: Request, session: Session = Depends(get_session)):
    body = await request.body()
    if not verify_webhook_hmac(body=body, supplied_hmac=request.headers.get("x-shopify-hmac-sha256")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook HMAC")

    shop_header = request.headers.get("x-shopify-shop-domain")
    if not shop_header:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing x-shopify-shop-domain header",
        )
    shop_domain = normalize_shop_domain(shop_header)

    existing = session.scalars(select(ShopSession.id).where(ShopSession.shop == shop_domain)).all()
    if existing:
        session.execute(delete(ShopSession).where(ShopSession.shop == shop_domain))
        session.commit()
        logger.info("Deleted %d session(s) for uninstalled shop %s", len(existing), shop_domain)

    return {"received": True}
