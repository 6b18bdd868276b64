from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from api_tester.config import settings
from api_tester.credentials import StoreCredentialsRepository
from api_tester.db import get_session
from api_tester.routers.stores import serialize_store

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))

router = APIRouter(include_in_schema=False)


@router.get("/", response_class=HTMLResponse)
def dashboard(request: Request, session: Session = Depends(get_session)):
    repository = StoreCredentialsRepository(session)
    stores = [serialize_store(credential) for credential in repository.list_all()]
    active = next((store for store in stores if store.isActive), None)
    return templates.TemplateResponse(
        request,
        "index.html",
        {"stores": stores, "active_store": active},
    )


@router.get("/stores", response_class=HTMLResponse)
def stores_page(request: Request, session: Session = Depends(get_session)):
    stores = [serialize_store(credential) for credential in StoreCredentialsRepository(session).list_all()]
    return templates.TemplateResponse(request, "stores.html", {"stores": stores})


@router.get("/stores/new", response_class=HTMLResponse)
def new_store_page(request: Request):
    return templates.TemplateResponse(
        request,
        "store_form.html",
        {"default_api_version": settings.API_TESTER_DEFAULT_API_VERSION},
    )


@router.get("/themes", response_class=HTMLResponse)
def themes_page(request: Request, session: Session = Depends(get_session)):
    active = StoreCredentialsRepository(session).get_active()
    return templates.TemplateResponse(
        request,
        "themes.html",
        {"active_store": serialize_store(active) if active else None},
    )
