from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CreateStoreRequest(BaseModel):
    name: str = Field(min_length=1)
    storeUrl: str = Field(min_length=1)
    adminApiToken: str = Field(min_length=1)
    scopes: str = Field(min_length=1)
    storefrontToken: str | None = None
    apiVersion: str | None = None
    notes: str | None = None


class UpdateStoreRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    storeUrl: str | None = Field(default=None, min_length=1)
    adminApiToken: str | None = Field(default=None, min_length=1)
    storefrontToken: str | None = None
    scopes: str | None = None
    apiVersion: str | None = Field(default=None, min_length=1)
    notes: str | None = None
    isActive: bool | None = None


class RegisterStoreRequest(BaseModel):
    appName: str = Field(min_length=1)
    storeUrl: str = Field(min_length=1)
    adminApiToken: str = Field(min_length=1)
    scopes: str = Field(min_length=1)
    storefrontToken: str | None = None
    apiVersion: str | None = None


class RegisterStoreResponse(BaseModel):
    success: bool = True
    id: str
    message: str = "Credentials registered successfully"


class StoreSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    storeUrl: str
    scopes: str
    apiVersion: str
    isActive: bool
    notes: str | None
    createdAt: datetime
    updatedAt: datetime


class StoreDetail(StoreSummary):
    adminApiToken: str
    storefrontToken: str | None


class DeleteStoreResponse(BaseModel):
    success: bool = True


class UpsertThemeFileRequest(BaseModel):
    filename: str = Field(min_length=1)
    content: str


class SyncShopResult(BaseModel):
    shop: str
    status: Literal["imported", "updated", "failed"]
    error: str | None = None


class SyncTokenResponse(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None
    results: list[SyncShopResult] = Field(default_factory=list)
