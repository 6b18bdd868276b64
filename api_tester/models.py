from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Index, String, Text, UniqueConstraint, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class StoreCredential(Base):
    __tablename__ = "store_credentials"
    __table_args__ = (
        UniqueConstraint("store_url", "name", name="uq_store_credentials_store_url_name"),
        # Only one row may carry is_active = true.
        Index(
            "uq_store_credentials_single_active",
            "is_active",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[str] = mapped_column(String(length=32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    store_url: Mapped[str] = mapped_column(String(length=255), nullable=False, index=True)
    admin_api_token: Mapped[str] = mapped_column(Text, nullable=False)
    storefront_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    scopes: Mapped[str] = mapped_column(Text, nullable=False)
    api_version: Mapped[str] = mapped_column(String(length=32), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
