"""Reconcile Rules — pure validation and merge-patch steps for subject create/update.

Invariants:
    - All functions are PURE: no IO, no async, no DB
    - parse_subject_id rejects empty, "undefined" and non-UUID ids before storage is touched
    - Education on create requires education_level; on update only supplied fields change
    - An empty password counts as "not supplied" (stored hash untouched)
    - Username and email carry no format rule beyond being present and non-blank;
      uniqueness is the store's job
    - A password longer than MAX_PASSWORD_BYTES (UTF-8) is rejected, never truncated
"""

from uuid import UUID

from registry.core.domain_types import SubjectId, EDUCATION_DETAIL_FIELDS, MAX_PASSWORD_BYTES
from registry.core.errors import ValidationError


def parse_subject_id(raw: str | None) -> SubjectId:
    """Validate a path id and convert it to a SubjectId."""
    if raw is None or not raw.strip() or raw.strip() == "undefined":
        raise ValidationError("Invalid subject ID", "id")
    try:
        return SubjectId(UUID(raw.strip()))
    except ValueError:
        raise ValidationError("Invalid subject ID", "id")


def validate_credential_fields(username: str, email: str) -> None:
    """Re-run credential field rules on the merged result of a patch."""
    if not username or not username.strip():
        raise ValidationError("Username is required", "username")
    if not email or not email.strip():
        raise ValidationError("Email is required", "email")


def validate_password(password: str) -> None:
    """bcrypt only reads 72 bytes; a multibyte password can pass a character cap and still exceed it."""
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes", "password",
        )


def password_supplied(password: str | None) -> bool:
    return bool(password)


def build_credential_changes(
    current_username: str,
    current_email: str,
    username: str | None,
    email: str | None,
) -> dict[str, str]:
    """Merge-patch: only fields that were supplied end up in the change set."""
    changes: dict[str, str] = {}
    if username is not None:
        changes["username"] = username
    if email is not None:
        changes["email"] = email
    validate_credential_fields(
        changes.get("username", current_username),
        changes.get("email", current_email),
    )
    return changes


def education_fields_for_create(payload: dict[str, str | None]) -> dict[str, str | None]:
    """Full column set for a new EducationRecord; unspecified track fields become None."""
    level = payload.get("education_level")
    if not level:
        raise ValidationError("educationLevel is required", "education.educationLevel")
    fields: dict[str, str | None] = {"education_level": level}
    for name in EDUCATION_DETAIL_FIELDS:
        fields[name] = payload.get(name) or None
    return fields


def education_fields_for_upsert(
    payload: dict[str, str | None], record_exists: bool,
) -> dict[str, str | None]:
    """Create needs the full column set; update merges only the supplied keys."""
    if not record_exists:
        return education_fields_for_create(payload)
    if "education_level" in payload and not payload["education_level"]:
        raise ValidationError("educationLevel cannot be empty", "education.educationLevel")
    return dict(payload)
