from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from shopify_admin.graphql import (
    DELETE_THEME_FILE,
    GET_FILE_CONTENT,
    GET_SHOP,
    GET_THEME_FILES,
    LIST_THEMES,
    THEME_FILES_PAGE_SIZE,
    THEMES_PAGE_SIZE,
    UPSERT_THEME_FILE,
)

_THEME_GID_PREFIX = "gid://shopify/OnlineStoreTheme/"


class ShopifyApiError(RuntimeError):
    def __init__(self, *, message: str, status_code: int = 502) -> None:
        super().__init__(message)
        self.status_code = status_code


class ShopifyHttpError(ShopifyApiError):
    """Non-2xx response from Shopify; keeps the upstream status and body text."""

    def __init__(self, *, upstream_status: int, body: str) -> None:
        super().__init__(
            message=f"Shopify API call failed ({upstream_status}): {body}",
            status_code=500,
        )
        self.upstream_status = upstream_status
        self.body = body


@dataclass(frozen=True)
class AdminApiConfig:
    store_url: str
    access_token: str
    api_version: str

    @property
    def graphql_url(self) -> str:
        return f"https://{self.store_url}/admin/api/{self.api_version}/graphql.json"


def to_theme_gid(theme_id: str) -> str:
    cleaned = theme_id.strip()
    if cleaned.isdigit():
        return f"{_THEME_GID_PREFIX}{cleaned}"
    return cleaned


def collect_user_errors(data: dict[str, Any] | None, mutation: str) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    payload = data.get(mutation)
    if not isinstance(payload, dict):
        return []
    errors = payload.get("userErrors") or []
    return [error for error in errors if isinstance(error, dict)]


class ShopifyAdminClient:
    def __init__(self, *, timeout: float = 20.0) -> None:
        self._timeout = timeout

    async def graphql(
        self,
        config: AdminApiConfig,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": config.access_token,
        }
        payload = {"query": query, "variables": variables or {}}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(config.graphql_url, json=payload, headers=headers)
        except httpx.RequestError as exc:
            raise ShopifyApiError(message=f"Network error while calling Shopify: {exc}") from exc

        if not response.is_success:
            raise ShopifyHttpError(upstream_status=response.status_code, body=response.text)

        try:
            body = response.json()
        except ValueError as exc:
            raise ShopifyApiError(message="Shopify API returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise ShopifyApiError(message="Shopify API response must be a JSON object")

        return {"data": body.get("data"), "errors": body.get("errors")}

    async def get_shop(self, config: AdminApiConfig) -> dict[str, Any]:
        return await self.graphql(config, GET_SHOP)

    async def list_themes(self, config: AdminApiConfig, *, first: int = THEMES_PAGE_SIZE) -> dict[str, Any]:
        return await self.graphql(config, LIST_THEMES, {"first": min(first, THEMES_PAGE_SIZE)})

    async def get_theme_files(self, config: AdminApiConfig, *, theme_id: str) -> dict[str, Any]:
        return await self.graphql(
            config,
            GET_THEME_FILES,
            {"themeId": to_theme_gid(theme_id), "first": THEME_FILES_PAGE_SIZE},
        )

    async def get_file_content(
        self,
        config: AdminApiConfig,
        *,
        theme_id: str,
        filename: str,
    ) -> dict[str, Any]:
        return await self.graphql(
            config,
            GET_FILE_CONTENT,
            {"themeId": to_theme_gid(theme_id), "filenames": [filename]},
        )

    async def upsert_file(
        self,
        config: AdminApiConfig,
        *,
        theme_id: str,
        filename: str,
        content: str,
    ) -> dict[str, Any]:
        return await self.graphql(
            config,
            UPSERT_THEME_FILE,
            {
                "themeId": to_theme_gid(theme_id),
                "files": [
                    {
                        "filename": filename,
                        "body": {
                            "type": "TEXT",
                            "value": content,
                        },
                    }
                ],
            },
        )

    async def delete_file(
        self,
        config: AdminApiConfig,
        *,
        theme_id: str,
        filename: str,
    ) -> dict[str, Any]:
        return await self.graphql(
            config,
            DELETE_THEME_FILE,
            {"themeId": to_theme_gid(theme_id), "files": [filename]},
        )

    async def exchange_code_for_access_token(
        self,
        *,
        shop_domain: str,
        client_id: str,
        client_secret: str,
        code: str,
    ) -> tuple[str, str]:
        url = f"https://{shop_domain}/admin/oauth/access_token"
        payload = {
            "client_id": client_id,
            "client_secret": client_secret,
            "code": code,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=payload)
        except httpx.RequestError as exc:
            raise ShopifyApiError(message=f"Network error while calling Shopify: {exc}") from exc

        if not response.is_success:
            raise ShopifyHttpError(upstream_status=response.status_code, body=response.text)

        try:
            body = response.json()
        except ValueError as exc:
            raise ShopifyApiError(message="Shopify API returned invalid JSON") from exc

        access_token = body.get("access_token") if isinstance(body, dict) else None
        scopes = body.get("scope") if isinstance(body, dict) else None
        if not isinstance(access_token, str) or not access_token:
            raise ShopifyApiError(message="OAuth token exchange response is missing access_token")
        if not isinstance(scopes, str):
            raise ShopifyApiError(message="OAuth token exchange response is missing scope")
        return access_token, scopes
