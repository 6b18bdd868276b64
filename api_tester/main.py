from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from api_tester.db import init_db
from api_tester.routers import pages, shopify, stores, sync

logger = logging.getLogger(__name__)


def validation_error_detail(exc: RequestValidationError) -> str:
    missing: list[str] = []
    invalid: list[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "header", "path")]
        field = ".".join(loc) or "body"
        if error.get("type") in {"missing", "string_too_short"}:
            missing.append(field)
        else:
            invalid.append(field)
    if missing and not invalid:
        return f"Missing required fields: {', '.join(missing)}"
    return f"Invalid request fields: {', '.join(missing + invalid)}"


@asynccontextmanager
async def _app_lifespan(_app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Shopify API Tester",
        default_response_class=ORJSONResponse,
        lifespan=_app_lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        return ORJSONResponse(status_code=400, content={"detail": validation_error_detail(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"detail": "Internal server error."})

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    app.include_router(stores.router)
    app.include_router(sync.router)
    app.include_router(shopify.router)
    app.include_router(pages.router)

    return app


app = create_app()
