from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import re
from collections.abc import Iterable, Sequence
from typing import Any
from urllib.parse import urlparse

from fastapi import HTTPException, status
from jose import jwt
from jose.exceptions import JWSError, JWTError

from theme_modifier.config import settings

logger = logging.getLogger(__name__)

_SHOP_DOMAIN_RE = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")
_SESSION_TOKEN_LEEWAY_SECONDS = 10


def normalize_shop_domain(shop: str) -> str:
    shop_domain = shop.strip().lower()
    if _SHOP_DOMAIN_RE.fullmatch(shop_domain) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="shop must be a valid *.myshopify.com domain",
        )
    return shop_domain


def _sign(payload: bytes) -> bytes:
    return hmac.new(settings.SHOPIFY_APP_API_SECRET.encode("utf-8"), payload, hashlib.sha256).digest()


def _matches(expected: str, supplied: str) -> bool:
    # Compared as bytes so non-ASCII input fails the check instead of raising.
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8", errors="replace"))


def _split_signed_params(
    query_items: Iterable[tuple[str, str]],
    signature_key: str,
) -> tuple[str | None, list[tuple[str, str]]]:
    supplied = None
    params: list[tuple[str, str]] = []
    for key, value in query_items:
        if key == signature_key:
            supplied = value
        elif key not in ("hmac", "signature"):
            params.append((key, value))
    return supplied, params


def verify_oauth_hmac(query_items: Sequence[tuple[str, str]]) -> bool:
    """OAuth redirects: `key=value` pairs sorted by key and joined with `&`, hex HMAC in `hmac`."""
    supplied, params = _split_signed_params(query_items, "hmac")
    if not supplied:
        return False
    message = "&".join(f"{key}={value}" for key, value in sorted(params, key=lambda item: item[0]))
    return _matches(_sign(message.encode("utf-8")).hex(), supplied)


def verify_app_proxy_signature(query_items: Sequence[tuple[str, str]]) -> bool:
    """App proxy requests: repeated keys joined with commas, pairs sorted and
    concatenated without a separator, hex HMAC in `signature`."""
    supplied, params = _split_signed_params(query_items, "signature")
    if not supplied:
        return False
    grouped: dict[str, list[str]] = {}
    for key, value in params:
        grouped.setdefault(key, []).append(value)
    message = "".join(f"{key}={','.join(values)}" for key, values in sorted(grouped.items()))
    return _matches(_sign(message.encode("utf-8")).hex(), supplied)


def verify_webhook_hmac(*, body: bytes, supplied_hmac: str | None) -> bool:
    """Webhooks: base64 HMAC of the raw body in `X-Shopify-Hmac-Sha256`."""
    if not supplied_hmac:
        return False
    return _matches(base64.b64encode(_sign(body)).decode("utf-8"), supplied_hmac)


def _invalid_session_token(detail: str = "Invalid session token") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def verify_session_token(token: str) -> str:
    """Verify a Shopify App Bridge session token and return the shop domain it was issued for.

    The token is an HS256 JWT signed with the app secret, with the API key as
    audience, `dest` set to the shop URL and `iss` set to the shop's admin URL.
    """
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.SHOPIFY_APP_API_SECRET,
            algorithms=["HS256"],
            audience=settings.SHOPIFY_APP_API_KEY,
            options={"leeway": _SESSION_TOKEN_LEEWAY_SECONDS},
        )
    except (JWTError, JWSError) as exc:
        logger.warning("Session token verification failed: %s", exc)
        raise _invalid_session_token() from exc

    dest_host = urlparse(str(claims.get("dest") or "")).hostname
    issuer_host = urlparse(str(claims.get("iss") or "")).hostname
    if not dest_host or dest_host != issuer_host:
        raise _invalid_session_token("Session token dest does not match its issuer")

    try:
        return normalize_shop_domain(dest_host)
    except HTTPException as exc:
        raise _invalid_session_token("Session token dest is not a shop domain") from exc
