"""PersonalDetail ORM — encrypted identity fields of a subject.

Invariants:
    - Exactly one row per subject (unique subject_id)
    - first_name/last_name hold either field-codec ciphertext or the "N/A" sentinel
"""

import uuid

from sqlalchemy import String, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from registry.core.domain_types import UNSET_FIELD
from registry.db.base import Base


class PersonalDetail(Base):
    __tablename__ = "personal_details"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("credentials.id"), nullable=False, unique=True,
    )
    first_name: Mapped[str] = mapped_column(
        String(512), nullable=False, default=UNSET_FIELD,
    )
    last_name: Mapped[str] = mapped_column(
        String(512), nullable=False, default=UNSET_FIELD,
    )
