from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from api_tester.config import settings
from api_tester.dependencies import require_store_config
from api_tester.schemas import UpsertThemeFileRequest
from shopify_admin.client import AdminApiConfig, ShopifyAdminClient, ShopifyApiError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shopify", tags=["shopify"])
shopify_api = ShopifyAdminClient(timeout=settings.API_TESTER_REQUEST_TIMEOUT_SECONDS)


async def _proxy(call: Awaitable[dict[str, Any]], *, operation: str) -> Any:
    try:
        result = await call
    except ShopifyApiError as exc:
        logger.warning("Shopify %s failed: %s", operation, exc)
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    if result.get("errors"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "GraphQL errors", "errors": result["errors"]},
        )
    return result.get("data")


@router.get("/shop")
async def get_shop(config: AdminApiConfig = Depends(require_store_config)):
    return await _proxy(shopify_api.get_shop(config), operation="shop lookup")


@router.get("/themes")
async def list_themes(config: AdminApiConfig = Depends(require_store_config)):
    return await _proxy(shopify_api.list_themes(config), operation="theme listing")


# Theme ids are GIDs that contain slashes, so the file routes are registered
# before the bare theme routes.
@router.get("/themes/{theme_id:path}/files")
async def get_theme_file(
    theme_id: str,
    filename: str,
    config: AdminApiConfig = Depends(require_store_config),
):
    return await _proxy(
        shopify_api.get_file_content(config, theme_id=theme_id, filename=filename),
        operation="file fetch",
    )


@router.post("/themes/{theme_id:path}/files")
async def upsert_theme_file(
    theme_id: str,
    payload: UpsertThemeFileRequest,
    config: AdminApiConfig = Depends(require_store_config),
):
    return await _proxy(
        shopify_api.upsert_file(
            config,
            theme_id=theme_id,
            filename=payload.filename,
            content=payload.content,
        ),
        operation="file upsert",
    )


@router.delete("/themes/{theme_id:path}/files")
async def delete_theme_file(
    theme_id: str,
    filename: str,
    config: AdminApiConfig = Depends(require_store_config),
):
    return await _proxy(
        shopify_api.delete_file(config, theme_id=theme_id, filename=filename),
        operation="file delete",
    )


@router.get("/themes/{theme_id:path}")
async def get_theme(theme_id: str, config: AdminApiConfig = Depends(require_store_config)):
    return await _proxy(
        shopify_api.get_theme_files(config, theme_id=theme_id),
        operation="file listing",
    )


@router.post("/themes/{theme_id:path}")
async def upsert_theme_file_alias(
    theme_id: str,
    payload: UpsertThemeFileRequest,
    config: AdminApiConfig = Depends(require_store_config),
):
    return await upsert_theme_file(theme_id=theme_id, payload=payload, config=config)


@router.delete("/themes/{theme_id:path}")
async def delete_theme_file_alias(
    theme_id: str,
    filename: str,
    config: AdminApiConfig = Depends(require_store_config),
):
    return await delete_theme_file(theme_id=theme_id, filename=filename, config=config)
