"""Subject Schemas — Pydantic models for the admin account API boundary.

Invariants:
    - Wire format is camelCase (educationLevel, subjectId, adminPassword); snake_case
      is accepted on input too
    - Update requests distinguish "not supplied" from supplied: services receive
      only keys present in the body (model_dump(exclude_unset=True))
    - CredentialResponse never carries the password hash
    - AccountSummaryResponse renders an unset name as the literal "N/A"

Design Decisions:
    - alias_generator=to_camel over per-field aliases: one rule for the whole module
    - yearLevel also accepts the legacy "yearlvl" key used by older clients
    - Passwords are capped in UTF-8 bytes, not characters: bcrypt reads 72 bytes
"""

from datetime import datetime
from uuid import UUID

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator,
)
from pydantic.alias_generators import to_camel

from registry.core.domain_types import UNSET_FIELD, MAX_PASSWORD_BYTES


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )


# --- Requests ----------------------------------------------------------------

def _within_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


class EducationPatch(_CamelModel):
    """Education payload for update — every field optional, only supplied ones applied."""
    education_level: str | None = Field(None, min_length=1, max_length=64)
    year_level: str | None = Field(
        None, max_length=32,
        validation_alias=AliasChoices("yearLevel", "yearlvl", "year_level"),
    )
    section: str | None = Field(None, max_length=64)
    department: str | None = Field(None, max_length=128)
    strand: str | None = Field(None, max_length=64)
    course: str | None = Field(None, max_length=128)


class EducationCreate(EducationPatch):
    """Education payload for registration — educationLevel mandatory."""
    education_level: str = Field(min_length=1, max_length=64)


class RegisterSubjectRequest(_CamelModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=72)
    email: str = Field(min_length=1, max_length=254)
    education: EducationCreate
    first_name: str | None = Field(None, max_length=128)
    last_name: str | None = Field(None, max_length=128)

    @field_validator("username", "email")
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, v: str) -> str:
        return _within_password_bytes(v)


class UpdateSubjectRequest(_CamelModel):
    email: str | None = Field(None, min_length=1, max_length=254)
    username: str | None = Field(None, min_length=1, max_length=64)
    password: str | None = Field(None, max_length=72)
    education: EducationPatch | None = None

    @field_validator("username", "email")
    @classmethod
    def strip_identifier(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, v: str | None) -> str | None:
        return _within_password_bytes(v) if v is not None else v


class ConfirmPasswordRequest(_CamelModel):
    admin_password: str = Field(min_length=1, max_length=72)


# --- Responses ---------------------------------------------------------------

class CredentialResponse(_CamelModel):
    id: UUID
    username: str
    email: str
    role: str
    created_at: datetime
    updated_at: datetime


class EducationResponse(_CamelModel):
    id: UUID
    subject_id: UUID
    education_level: str
    year_level: str | None = None
    section: str | None = None
    department: str | None = None
    strand: str | None = None
    course: str | None = None


class SubjectResponse(_CamelModel):
    user: CredentialResponse
    education: EducationResponse | None = None

    @classmethod
    def from_records(cls, credential, education) -> "SubjectResponse":
        """Build from store rows (ORM objects or anything attribute-compatible)."""
        return cls(
            user=CredentialResponse.model_validate(credential),
            education=(
                EducationResponse.model_validate(education)
                if education is not None else None
            ),
        )


class AccountSummaryResponse(_CamelModel):
    subject_id: UUID
    first_name: str | None
    last_name: str | None

    @field_serializer("first_name", "last_name")
    def render_unset(self, v: str | None) -> str:
        return UNSET_FIELD if v is None else v


class MessageResponse(BaseModel):
    message: str
