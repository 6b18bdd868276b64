from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any

from theme_modifier.config import settings

CONTENT_VARIANTS = ("default", "promo", "announcement")
DATA_TYPES = ("general", "products", "config", "stats")

_SAMPLE_PRODUCTS = [
    {"id": 1, "name": "Product A", "price": 29.99, "inStock": True},
    {"id": 2, "name": "Product B", "price": 49.99, "inStock": True},
    {"id": 3, "name": "Product C", "price": 19.99, "inStock": False},
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def render_content(variant: str | None, *, via_proxy: bool = False) -> str:
    """HTML fragment for an SDK content block. Unknown variants fall back to default."""
    if variant == "promo":
        valid_until = (_now() + timedelta(days=7)).date().isoformat()
        return (
            '<div class="app-content app-content--promo">'
            "<h3>Special Offer!</h3>"
            "<p>Get 20% off your next purchase with code: <strong>SAVE20</strong></p>"
            f"<p>Valid until: {valid_until}</p>"
            "</div>"
        )

    if variant == "announcement":
        return (
            '<div class="app-content app-content--announcement">'
            "<h3>New Arrivals!</h3>"
            "<p>Check out our latest collection of products.</p>"
            "<p>Fresh styles added weekly.</p>"
            "</div>"
        )

    if via_proxy:
        origin_lines = (
            "<p>This content was loaded via App Proxy.</p>"
            f"<p>Timestamp: {_now().isoformat()}</p>"
            "<p>No CORS needed - requests go through your store's domain!</p>"
        )
    else:
        origin_lines = (
            "<p>This HTML content was fetched from the app server.</p>"
            f"<p>Timestamp: {_now().isoformat()}</p>"
            "<p>The SDK successfully loaded this content dynamically.</p>"
        )
    return f'<div class="app-content"><h3>Hello from the App!</h3>{origin_lines}</div>'


def build_data(data_type: str | None, *, via_proxy: bool = False) -> dict[str, Any]:
    """JSON payload for an SDK data block. Unknown types fall back to general."""
    timestamp = _now().isoformat()

    if data_type == "products":
        data: dict[str, Any] = {
            "success": True,
            "type": "products",
            "timestamp": timestamp,
            "items": [dict(item) for item in _SAMPLE_PRODUCTS],
            "total": len(_SAMPLE_PRODUCTS),
        }
    elif data_type == "config":
        data = {
            "success": True,
            "type": "config",
            "timestamp": timestamp,
            "settings": {
                "theme": "light",
                "showPrices": True,
                "currency": "USD",
                "locale": "en-US",
            },
        }
    elif data_type == "stats" and not via_proxy:
        data = {
            "success": True,
            "type": "stats",
            "timestamp": timestamp,
            "metrics": {
                "visitors": random.randint(0, 999),
                "pageViews": random.randint(0, 4999),
                "conversionRate": f"{random.uniform(0, 5):.2f}%",
            },
        }
    else:
        data = {
            "success": True,
            "type": "general",
            "message": "Hello from the App Proxy!" if via_proxy else "Hello from the API!",
            "timestamp": timestamp,
            "items": ["Item 1", "Item 2", "Item 3"],
        }
        if not via_proxy:
            data["description"] = "This JSON data was fetched from the app server."
            data["metadata"] = {"version": "1.0.0", "environment": settings.ENVIRONMENT}

    if via_proxy:
        data["source"] = "app-proxy"
    return data
