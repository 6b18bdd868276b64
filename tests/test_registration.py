from __future__ import annotations

import asyncio
import json

import httpx

import theme_modifier.registration as registration_module
from theme_modifier.config import settings
from theme_modifier.content import build_data, render_content
from theme_modifier.models import ShopSession
from theme_modifier.registration import ApiTesterRegistrationClient


def _install_transport(monkeypatch, handler) -> None:
    real_async_client = httpx.AsyncClient

    def fake_async_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_async_client(*args, **kwargs)

    monkeypatch.setattr(registration_module.httpx, "AsyncClient", fake_async_client)


def _shop_session(access_token: str = "shpat_installed", scope: str | None = "read_themes") -> ShopSession:
    return ShopSession(
        id="offline_example.myshopify.com",
        shop="example.myshopify.com",
        access_token=access_token,
        scope=scope,
        is_online=False,
    )


def test_register_posts_credentials_to_api_tester(monkeypatch):
    monkeypatch.setattr(settings, "API_TESTER_REGISTRATION_ENABLED", True)
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"success": True, "id": "abc"})

    _install_transport(monkeypatch, handler)

    assert asyncio.run(ApiTesterRegistrationClient().register(_shop_session(scope=None))) is True

    assert str(captured[0].url) == f"{settings.api_tester_base_url}/api/stores/register"
    assert json.loads(captured[0].content) == {
        "appName": settings.APP_NAME,
        "storeUrl": "example.myshopify.com",
        "adminApiToken": "shpat_installed",
        "scopes": settings.SHOPIFY_APP_SCOPES,
        "apiVersion": settings.SHOPIFY_ADMIN_API_VERSION,
    }


def test_register_skips_sessions_without_token(monkeypatch):
    monkeypatch.setattr(settings, "API_TESTER_REGISTRATION_ENABLED", True)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("registration must not call the API tester without a token")

    _install_transport(monkeypatch, handler)

    assert asyncio.run(ApiTesterRegistrationClient().register(_shop_session(access_token=""))) is False


def test_register_is_disabled_by_setting(monkeypatch):
    monkeypatch.setattr(settings, "API_TESTER_REGISTRATION_ENABLED", False)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("registration is disabled")

    _install_transport(monkeypatch, handler)

    assert asyncio.run(ApiTesterRegistrationClient().register(_shop_session())) is False


def test_register_failures_are_reported_not_raised(monkeypatch):
    monkeypatch.setattr(settings, "API_TESTER_REGISTRATION_ENABLED", True)

    def rejecting_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "Internal server error."})

    _install_transport(monkeypatch, rejecting_handler)
    assert asyncio.run(ApiTesterRegistrationClient().register(_shop_session())) is False

    def unreachable_handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    _install_transport(monkeypatch, unreachable_handler)
    assert asyncio.run(ApiTesterRegistrationClient().register(_shop_session())) is False


def test_render_content_variants():
    assert "Special Offer!" in render_content("promo")
    assert "New Arrivals!" in render_content("announcement")
    assert "fetched from the app server" in render_content("default")
    assert "loaded via App Proxy" in render_content("default", via_proxy=True)
    assert render_content("nope").startswith('<div class="app-content">')


def test_build_data_tags_proxy_payloads():
    stats = build_data("stats")
    proxied_stats = build_data("stats", via_proxy=True)
    proxied_config = build_data("config", via_proxy=True)

    assert stats["type"] == "stats"
    assert set(stats["metrics"]) == {"visitors", "pageViews", "conversionRate"}
    assert proxied_stats["type"] == "general"
    assert proxied_stats["source"] == "app-proxy"
    assert proxied_config["settings"]["currency"] == "USD"
    assert "source" not in build_data("config")
