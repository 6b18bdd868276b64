from __future__ import annotations

import base64
import hashlib
import hmac
import time

import pytest
from fastapi import HTTPException
from jose import jwt

from theme_modifier.config import settings
from theme_modifier.security import (
    normalize_shop_domain,
    verify_app_proxy_signature,
    verify_oauth_hmac,
    verify_session_token,
    verify_webhook_hmac,
)


def _hex(message: str) -> str:
    return hmac.new(
        settings.SHOPIFY_APP_API_SECRET.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def _session_token(*, shop: str = "example.myshopify.com", secret: str | None = None, **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "aud": settings.SHOPIFY_APP_API_KEY,
        "sub": "42",
        "exp": now + 60,
        "nbf": now - 5,
        "iat": now - 5,
        "jti": "token-1",
        "sid": "session-1",
    }
    claims.update(overrides)
    return jwt.encode(claims, secret or settings.SHOPIFY_APP_API_SECRET, algorithm="HS256")


def test_normalize_shop_domain_lowercases_valid_domains():
    assert normalize_shop_domain("  Example-Store.MyShopify.com ") == "example-store.myshopify.com"


@pytest.mark.parametrize("shop", ["example.com", "https://example.myshopify.com", "-bad.myshopify.com", ""])
def test_normalize_shop_domain_rejects_invalid_domains(shop):
    with pytest.raises(HTTPException) as exc_info:
        normalize_shop_domain(shop)
    assert exc_info.value.status_code == 400


def test_verify_oauth_hmac_ignores_signature_and_sorts_params():
    digest = _hex("code=abc&shop=example.myshopify.com&state=xyz&timestamp=1")
    items = [
        ("timestamp", "1"),
        ("state", "xyz"),
        ("shop", "example.myshopify.com"),
        ("signature", "ignored"),
        ("code", "abc"),
        ("hmac", digest),
    ]

    assert verify_oauth_hmac(items) is True
    assert verify_oauth_hmac([item for item in items if item[0] != "hmac"]) is False
    assert verify_oauth_hmac([("code", "tampered") if key == "code" else (key, value) for key, value in items]) is False


def test_verify_app_proxy_signature_joins_repeated_keys():
    signature = _hex("extra=1,2path_prefix=/apps/sdkshop=example.myshopify.comtimestamp=1700000000")
    items = [
        ("shop", "example.myshopify.com"),
        ("path_prefix", "/apps/sdk"),
        ("timestamp", "1700000000"),
        ("extra", "1"),
        ("extra", "2"),
        ("signature", signature),
    ]

    assert verify_app_proxy_signature(items) is True
    assert verify_app_proxy_signature(items[:-1]) is False
    assert verify_app_proxy_signature([*items[:-1], ("signature", "0" * 64)]) is False


def test_verify_webhook_hmac_uses_base64_digest():
    body = b'{"id":1}'
    digest = hmac.new(settings.SHOPIFY_APP_API_SECRET.encode("utf-8"), body, hashlib.sha256).digest()
    supplied = base64.b64encode(digest).decode("utf-8")

    assert verify_webhook_hmac(body=body, supplied_hmac=supplied) is True
    assert verify_webhook_hmac(body=b"{}", supplied_hmac=supplied) is False
    assert verify_webhook_hmac(body=body, supplied_hmac=None) is False


def test_non_ascii_signatures_fail_verification_instead_of_raising():
    proxy_items = [("shop", "example.myshopify.com"), ("timestamp", "1"), ("signature", "é")]
    oauth_items = [("shop", "example.myshopify.com"), ("code", "abc"), ("hmac", "é" * 64)]

    assert verify_app_proxy_signature(proxy_items) is False
    assert verify_oauth_hmac(oauth_items) is False
    assert verify_webhook_hmac(body=b"{}", supplied_hmac="été") is False


def test_verify_session_token_returns_shop_domain():
    assert verify_session_token(_session_token()) == "example.myshopify.com"


@pytest.mark.parametrize(
    "token_kwargs",
    [
        {"secret": "not_the_app_secret"},
        {"aud": "some_other_app"},
        {"exp": 1_000_000_000},
        {"iss": "https://attacker.myshopify.com/admin"},
        {"shop": "example.com"},
    ],
)
def test_verify_session_token_rejects_untrusted_tokens(token_kwargs):
    with pytest.raises(HTTPException) as exc_info:
        verify_session_token(_session_token(**token_kwargs))
    assert exc_info.value.status_code == 401


def test_verify_session_token_rejects_garbage():
    with pytest.raises(HTTPException) as exc_info:
        verify_session_token("not-a-jwt")
    assert exc_info.value.status_code == 401
