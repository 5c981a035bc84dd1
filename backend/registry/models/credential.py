"""Credential ORM — login identity and role of a subject.

Invariants:
    - id is the subject identifier shared by every child record
    - username and email are unique (database indexes are the source of truth;
      application lookups are only an early rejection)
    - password_hash is never serialized into any response

Design Decisions:
    - No cascade to children: credentials are never deleted by an operation in scope,
      only by registration compensation, which removes children explicitly first
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from registry.db.base import Base


class Credential(Base):
    """Credential aggregate root — one per subject."""
    __tablename__ = "credentials"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True,
    )
    email: Mapped[str] = mapped_column(
        String(254), nullable=False, unique=True,
    )
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
