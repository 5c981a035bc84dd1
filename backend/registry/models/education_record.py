"""EducationRecord ORM — schooling track of a subject.

Invariants:
    - At most one row per subject (unique subject_id): upserts never duplicate
    - education_level is required; the track fields are independently nullable
      (senior high uses strand, college uses department/course, and so on)
    - created_at orders aggregation output (insertion order)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from registry.db.base import Base


class EducationRecord(Base):
    __tablename__ = "education_records"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("credentials.id"), nullable=False, unique=True,
    )
    education_level: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True,
    )
    year_level: Mapped[str | None] = mapped_column(String(32), nullable=True)
    section: Mapped[str | None] = mapped_column(String(64), nullable=True)
    department: Mapped[str | None] = mapped_column(String(128), nullable=True)
    strand: Mapped[str | None] = mapped_column(String(64), nullable=True)
    course: Mapped[str | None] = mapped_column(String(128), nullable=True)
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
