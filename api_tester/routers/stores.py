from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api_tester.config import settings
from api_tester.credentials import StoreCredentialsRepository, normalize_store_url
from api_tester.db import get_session
from api_tester.models import StoreCredential
from api_tester.schemas import (
    CreateStoreRequest,
    DeleteStoreResponse,
    RegisterStoreRequest,
    RegisterStoreResponse,
    StoreDetail,
    StoreSummary,
    UpdateStoreRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stores", tags=["stores"])

_DUPLICATE_STORE_DETAIL = "A store with this name and URL already exists"
_CONCURRENT_ACTIVATION_DETAIL = "Another store was activated at the same time. Reload and try again."
_SINGLE_ACTIVE_MARKERS = ("uq_store_credentials_single_active", "store_credentials.is_active")


def serialize_store(credential: StoreCredential) -> StoreSummary:
    return StoreSummary(
        id=credential.id,
        name=credential.name,
        storeUrl=credential.store_url,
        scopes=credential.scopes,
        apiVersion=credential.api_version,
        isActive=credential.is_active,
        notes=credential.notes,
        createdAt=credential.created_at,
        updatedAt=credential.updated_at,
    )


def _serialize_store_detail(credential: StoreCredential) -> StoreDetail:
    return StoreDetail(
        **serialize_store(credential).model_dump(),
        adminApiToken=credential.admin_api_token,
        storefrontToken=credential.storefront_token,
    )


def _violates_single_active(exc: IntegrityError) -> bool:
    # SQLite reports the indexed column, Postgres the index name.
    message = str(exc.orig)
    return any(marker in message for marker in _SINGLE_ACTIVE_MARKERS)


def _get_store_or_404(repository: StoreCredentialsRepository, store_id: str) -> StoreCredential:
    credential = repository.get(store_id)
    if credential is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")
    return credential


@router.get("", response_model=list[StoreSummary])
def list_stores(session: Session = Depends(get_session)):
    return [serialize_store(credential) for credential in StoreCredentialsRepository(session).list_all()]


@router.post("", response_model=StoreDetail, status_code=status.HTTP_201_CREATED)
def create_store(payload: CreateStoreRequest, session: Session = Depends(get_session)):
    repository = StoreCredentialsRepository(session)
    credential = StoreCredential(
        name=payload.name,
        store_url=normalize_store_url(payload.storeUrl),
        admin_api_token=payload.adminApiToken,
        storefront_token=payload.storefrontToken or None,
        scopes=payload.scopes,
        api_version=payload.apiVersion or settings.API_TESTER_DEFAULT_API_VERSION,
        notes=payload.notes or None,
    )
    try:
        repository.add(credential)
    except IntegrityError as exc:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_DUPLICATE_STORE_DETAIL) from exc
    return _serialize_store_detail(credential)


@router.post("/register", response_model=RegisterStoreResponse)
def register_store(payload: RegisterStoreRequest, session: Session = Depends(get_session)):
    store_url = normalize_store_url(payload.storeUrl)
    api_version = payload.apiVersion or settings.API_TESTER_DEFAULT_API_VERSION
    token_fields = {
        "admin_api_token": payload.adminApiToken,
        "storefront_token": payload.storefrontToken or None,
        "scopes": payload.scopes,
        "api_version": api_version,
    }
    repository = StoreCredentialsRepository(session)
    try:
        credential, _ = repository.upsert(
            store_url=store_url,
            name=payload.appName,
            update_fields=token_fields,
            create_fields=token_fields,
        )
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_DUPLICATE_STORE_DETAIL) from exc

    logger.info("Store credential registered/updated: %s @ %s", payload.appName, store_url)
    return RegisterStoreResponse(id=credential.id)


@router.get("/{store_id}", response_model=StoreDetail)
def get_store(store_id: str, session: Session = Depends(get_session)):
    credential = _get_store_or_404(StoreCredentialsRepository(session), store_id)
    return _serialize_store_detail(credential)


@router.put("/{store_id}", response_model=StoreDetail)
def update_store(store_id: str, payload: UpdateStoreRequest, session: Session = Depends(get_session)):
    repository = StoreCredentialsRepository(session)
    credential = _get_store_or_404(repository, store_id)

    fields_set = payload.model_fields_set
    if "name" in fields_set and payload.name is not None:
        credential.name = payload.name
    if "storeUrl" in fields_set and payload.storeUrl is not None:
        credential.store_url = normalize_store_url(payload.storeUrl)
    if "adminApiToken" in fields_set and payload.adminApiToken is not None:
        credential.admin_api_token = payload.adminApiToken
    if "storefrontToken" in fields_set:
        credential.storefront_token = payload.storefrontToken or None
    if "scopes" in fields_set and payload.scopes is not None:
        credential.scopes = payload.scopes
    if "apiVersion" in fields_set and payload.apiVersion is not None:
        credential.api_version = payload.apiVersion
    if "notes" in fields_set:
        credential.notes = payload.notes or None

    try:
        if payload.isActive:
            repository.activate(credential)
        elif payload.isActive is False:
            credential.is_active = False
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        detail = _CONCURRENT_ACTIVATION_DETAIL if _violates_single_active(exc) else _DUPLICATE_STORE_DETAIL
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc

    session.refresh(credential)
    return _serialize_store_detail(credential)


@router.delete("/{store_id}", response_model=DeleteStoreResponse)
def delete_store(store_id: str, session: Session = Depends(get_session)):
    repository = StoreCredentialsRepository(session)
    credential = _get_store_or_404(repository, store_id)
    repository.delete(credential)
    return DeleteStoreResponse()
