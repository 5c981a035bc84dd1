"""Identity Store — SQLAlchemy implementation of the IdentityStore protocol.

Invariants:
    - Every method opens its own short-lived session: one call = one unit of work
    - Concurrent calls never share an AsyncSession (safe for the aggregation fan-out)
    - Unique-index violations on credentials surface as ConflictError naming the
      field (inserts check username first, updates email first); else StorageError
    - Returned rows are detached (expire_on_commit=False) and safe to read later

Design Decisions:
    - Session-per-call over request-scoped session: the aggregation fan-out needs
      independent sessions, and writes are deliberately not grouped in one transaction
    - Education upsert resolves on the unique subject_id; a lost insert race is
      retried once as an update instead of creating a duplicate row
"""

import logging

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from registry.core.aggregate_rows import EducationLink, StoredNames
from registry.core.domain_types import SubjectId
from registry.core.errors import ConflictError, StorageError
from registry.infrastructure.database import DatabaseSessionManager
from registry.models.credential import Credential
from registry.models.education_record import EducationRecord
from registry.models.medical_record import MedicalRecord
from registry.models.personal_detail import PersonalDetail

logger = logging.getLogger(__name__)


class SqlIdentityStore:
    """Credential + PersonalDetail + EducationRecord + MedicalRecord persistence."""

    def __init__(self, manager: DatabaseSessionManager):
        self._manager = manager

    # ─── Credentials ────────────────────────────────────────────

    async def get_credential(self, subject_id: SubjectId) -> Credential | None:
        async with self._manager.session("get_credential") as db:
            return await db.get(Credential, subject_id)

    async def find_credential_by_username(
        self, username: str, exclude: SubjectId | None = None,
    ) -> Credential | None:
        query = select(Credential).where(Credential.username == username)
        if exclude is not None:
            query = query.where(Credential.id != exclude)
        async with self._manager.session("find_credential_by_username") as db:
            result = await db.execute(query.limit(1))
            return result.scalar_one_or_none()

    async def find_credential_by_email(
        self, email: str, exclude: SubjectId | None = None,
    ) -> Credential | None:
        query = select(Credential).where(Credential.email == email)
        if exclude is not None:
            query = query.where(Credential.id != exclude)
        async with self._manager.session("find_credential_by_email") as db:
            result = await db.execute(query.limit(1))
            return result.scalar_one_or_none()

    async def create_credential(
        self, username: str, email: str, password_hash: str, role: str,
    ) -> Credential:
        credential = Credential(
            username=username, email=email,
            password_hash=password_hash, role=role,
        )
        async with self._manager.session("create_credential") as db:
            db.add(credential)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                field = await _conflicting_field(
                    db, {"username": username, "email": email}, exclude=None,
                )
                logger.warning(
                    "Credential insert lost a uniqueness race",
                    extra={"field": field, "operation": "create_credential"},
                )
                raise ConflictError(field)
            return credential

    async def update_credential(
        self, subject_id: SubjectId, changes: dict[str, str],
    ) -> Credential | None:
        async with self._manager.session("update_credential") as db:
            credential = await db.get(Credential, subject_id)
            if credential is None:
                return None
            for name, value in changes.items():
                setattr(credential, name, value)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                field = await _conflicting_field(
                    db,
                    {"email": changes.get("email"), "username": changes.get("username")},
                    exclude=subject_id,
                )
                raise ConflictError(field)
            return credential

    # ─── Child records ──────────────────────────────────────────

    async def create_personal_detail(
        self, subject_id: SubjectId, first_name: str, last_name: str,
    ) -> None:
        async with self._manager.session("create_personal_detail") as db:
            db.add(PersonalDetail(
                subject_id=subject_id, first_name=first_name, last_name=last_name,
            ))
            await db.commit()

    async def get_personal_names(self, subject_id: SubjectId) -> StoredNames | None:
        query = (
            select(PersonalDetail.first_name, PersonalDetail.last_name)
            .where(PersonalDetail.subject_id == subject_id)
        )
        async with self._manager.session("get_personal_names") as db:
            row = (await db.execute(query)).first()
        if row is None:
            return None
        return StoredNames(first_name=row.first_name, last_name=row.last_name)

    async def create_medical_record(self, subject_id: SubjectId) -> None:
        async with self._manager.session("create_medical_record") as db:
            db.add(MedicalRecord(subject_id=subject_id))
            await db.commit()

    async def create_education_record(
        self, subject_id: SubjectId, fields: dict[str, str | None],
    ) -> EducationRecord:
        record = EducationRecord(subject_id=subject_id, **fields)
        async with self._manager.session("create_education_record") as db:
            db.add(record)
            await db.commit()
            return record

    async def get_education_record(self, subject_id: SubjectId) -> EducationRecord | None:
        async with self._manager.session("get_education_record") as db:
            return await _education_for(db, subject_id)

    async def upsert_education_record(
        self, subject_id: SubjectId, fields: dict[str, str | None],
    ) -> EducationRecord:
        async with self._manager.session("upsert_education_record") as db:
            record = await _education_for(db, subject_id)
            if record is None:
                record = EducationRecord(subject_id=subject_id, **fields)
                db.add(record)
                try:
                    await db.commit()
                    return record
                except IntegrityError:
                    # Another writer created the row between our read and insert.
                    await db.rollback()
                    record = await _education_for(db, subject_id)
                    if record is None:
                        raise StorageError("Education upsert conflicted", "upsert")
            for name, value in fields.items():
                setattr(record, name, value)
            await db.commit()
            return record

    # ─── Aggregation ────────────────────────────────────────────

    async def list_education_links(self, education_level: str) -> list[EducationLink]:
        query = (
            select(EducationRecord.subject_id, Credential.role)
            .outerjoin(Credential, Credential.id == EducationRecord.subject_id)
            .where(EducationRecord.education_level == education_level)
            .order_by(EducationRecord.created_at, EducationRecord.id)
        )
        async with self._manager.session("list_education_links") as db:
            rows = (await db.execute(query)).all()
        return [
            EducationLink(subject_id=SubjectId(row.subject_id), role=row.role)
            for row in rows
        ]

    # ─── Compensation ───────────────────────────────────────────

    async def delete_subject(self, subject_id: SubjectId) -> None:
        """Remove every row of a subject, children first. Used only to undo a failed registration."""
        async with self._manager.session("delete_subject") as db:
            for model in (EducationRecord, MedicalRecord, PersonalDetail):
                await db.execute(delete(model).where(model.subject_id == subject_id))
            await db.execute(delete(Credential).where(Credential.id == subject_id))
            await db.commit()


async def _education_for(db: AsyncSession, subject_id: SubjectId) -> EducationRecord | None:
    result = await db.execute(
        select(EducationRecord).where(EducationRecord.subject_id == subject_id),
    )
    return result.scalar_one_or_none()


async def _conflicting_field(
    db: AsyncSession, values: dict[str, str | None], exclude: SubjectId | None,
) -> str:
    """Name the first field (in `values` order) a failed unique write collided on."""
    for field, value in values.items():
        column = getattr(Credential, field)
        if value is None:
            continue
        query = select(Credential.id).where(column == value)
        if exclude is not None:
            query = query.where(Credential.id != exclude)
        if (await db.execute(query.limit(1))).first() is not None:
            return field
    raise StorageError("Integrity constraint violated", "commit")
