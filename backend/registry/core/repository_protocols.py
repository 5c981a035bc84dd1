"""Boundary Protocols — contracts between core/services and the identity store.

Invariants:
    - Services NEVER import the SQL store — dependency arrows point inward only
    - Every IO operation goes through IdentityStore
    - Each store method is its own unit of work: nothing spans two calls, so a
      sequence of calls is NOT atomic (see services/reconciliation.py for the saga)

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Record protocols instead of ORM imports: services get real type information
      without coupling to SQLAlchemy
    - Stored names cross this boundary still sealed (ciphertext or sentinel);
      opening them is the caller's job, via core/field_codec.py
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from registry.core.domain_types import SubjectId
from registry.core.aggregate_rows import EducationLink, StoredNames


class CredentialLike(Protocol):
    """Structural contract for Credential rows returned by the store."""
    id: UUID
    username: str
    email: str
    password_hash: str
    role: str
    created_at: datetime
    updated_at: datetime


class EducationLike(Protocol):
    """Structural contract for EducationRecord rows returned by the store."""
    id: UUID
    subject_id: UUID
    education_level: str
    year_level: str | None
    section: str | None
    department: str | None
    strand: str | None
    course: str | None


class IdentityStore(Protocol):
    """Contract for the four subject collections — implemented by infrastructure."""

    # Credentials
    async def get_credential(self, subject_id: SubjectId) -> CredentialLike | None: ...
    async def find_credential_by_username(
        self, username: str, exclude: SubjectId | None = None,
    ) -> CredentialLike | None: ...
    async def find_credential_by_email(
        self, email: str, exclude: SubjectId | None = None,
    ) -> CredentialLike | None: ...
    async def create_credential(
        self, username: str, email: str, password_hash: str, role: str,
    ) -> CredentialLike: ...
    async def update_credential(
        self, subject_id: SubjectId, changes: dict[str, str],
    ) -> CredentialLike | None: ...

    # Child records
    async def create_personal_detail(
        self, subject_id: SubjectId, first_name: str, last_name: str,
    ) -> None: ...
    async def get_personal_names(self, subject_id: SubjectId) -> StoredNames | None: ...
    async def create_medical_record(self, subject_id: SubjectId) -> None: ...
    async def create_education_record(
        self, subject_id: SubjectId, fields: dict[str, str | None],
    ) -> EducationLike: ...
    async def get_education_record(self, subject_id: SubjectId) -> EducationLike | None: ...
    async def upsert_education_record(
        self, subject_id: SubjectId, fields: dict[str, str | None],
    ) -> EducationLike: ...

    # Aggregation
    async def list_education_links(self, education_level: str) -> list[EducationLink]: ...

    # Compensation
    async def delete_subject(self, subject_id: SubjectId) -> None: ...


class PasswordHasher(Protocol):
    """Contract for the credential hashing collaborator."""
    async def hash(self, password: str) -> str: ...
    async def verify(self, password: str, password_hash: str) -> bool: ...
