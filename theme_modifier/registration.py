from __future__ import annotations

import logging

import httpx

from theme_modifier.config import settings
from theme_modifier.models import ShopSession

logger = logging.getLogger(__name__)


class ApiTesterRegistrationClient:
    """Pushes installed-shop credentials to the API tester's registration endpoint.

    Registration is best effort: the install flow must not fail because the
    API tester is down or rejects the payload, so failures are logged and
    reported through the return value only.
    """

    def __init__(self) -> None:
        self._timeout = settings.SHOPIFY_REQUEST_TIMEOUT_SECONDS

    def _payload(self, session: ShopSession) -> dict[str, str]:
        return {
            "appName": settings.APP_NAME,
            "storeUrl": session.shop,
            "adminApiToken": session.access_token,
            "scopes": session.scope or settings.SHOPIFY_APP_SCOPES,
            "apiVersion": settings.SHOPIFY_ADMIN_API_VERSION,
        }

    async def register(self, session: ShopSession) -> bool:
        if not settings.API_TESTER_REGISTRATION_ENABLED:
            return False
        if not session.access_token:
            logger.info("No access token in session for %s, skipping API tester registration", session.shop)
            return False

        url = f"{settings.api_tester_base_url}/api/stores/register"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=self._payload(session))
        except httpx.RequestError as exc:
            logger.warning("Could not reach API tester at %s: %s", url, exc)
            return False

        if response.status_code >= 400:
            logger.warning(
                "API tester rejected registration for %s (%s): %s",
                session.shop,
                response.status_code,
                response.text,
            )
            return False

        logger.info("Registered credentials for %s with API tester", session.shop)
        return True
