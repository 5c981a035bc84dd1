"""Reconciliation Engine — create and update a subject across the four collections.

Invariants:
    - Gate and uniqueness checks run before the first write; a rejected call writes nothing
    - Registration: username checked before email, so a username clash is reported
      even when the email would clash too
    - Update: email checked before username; one conflicting field is never silently
      accepted because the other one is fine
    - Credential changes are a merge-patch (never creates); education is an upsert
      (creates on absence, merges on presence, same row)
    - A missing credential stops update before the education record is touched
    - Omitted (or empty) password leaves the stored hash untouched

Design Decisions:
    - Multi-write sequences run as a saga, not a transaction: each store call commits
      on its own. Registration undoes itself (delete_subject) if a child write fails;
      update restores the credential snapshot if the education upsert fails. A failed
      compensation is logged and the original error still propagates, leaving the
      partial record behind for an operator
    - Application uniqueness lookups are the fast path only: the unique indexes in
      the store turn a lost check-then-write race into ConflictError
"""

import logging
from dataclasses import dataclass, field

from registry.core.access_gate import require
from registry.core.domain_types import (
    SubjectId, Role, Operation, REGISTRATION_ROLE,
)
from registry.core.errors import ConflictError, NotFoundError, RegistryError, ValidationError
from registry.core.field_codec import FieldCodec, seal_field
from registry.core.reconcile_rules import (
    parse_subject_id,
    validate_credential_fields,
    validate_password,
    password_supplied,
    build_credential_changes,
    education_fields_for_create,
    education_fields_for_upsert,
)
from registry.core.repository_protocols import (
    IdentityStore, PasswordHasher, CredentialLike, EducationLike,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisterSubjectCommand:
    username: str
    password: str
    email: str
    education: dict[str, str | None]
    first_name: str | None = None
    last_name: str | None = None


@dataclass(frozen=True)
class UpdateSubjectCommand:
    """Only fields that are not None were supplied by the caller."""
    email: str | None = None
    username: str | None = None
    password: str | None = None
    education: dict[str, str | None] | None = field(default=None)


class SubjectReconciler:
    """Registers, updates and reads subjects on behalf of an authenticated caller."""

    def __init__(
        self,
        store: IdentityStore,
        codec: FieldCodec,
        hasher: PasswordHasher,
        protect_reads: bool = False,
    ):
        self.store = store
        self.codec = codec
        self.hasher = hasher
        self.protect_reads = protect_reads

    # ─── Create ─────────────────────────────────────────────────

    async def register_subject(
        self, caller_role: Role, command: RegisterSubjectCommand,
    ) -> SubjectId:
        require(caller_role, Operation.REGISTER_SUBJECT)
        validate_credential_fields(command.username, command.email)
        if not password_supplied(command.password):
            raise ValidationError("Password is required", "password")
        validate_password(command.password)
        education = education_fields_for_create(command.education)
        first_name = seal_field(self.codec, command.first_name)
        last_name = seal_field(self.codec, command.last_name)

        if await self.store.find_credential_by_username(command.username):
            raise ConflictError("username")
        if await self.store.find_credential_by_email(command.email):
            raise ConflictError("email")

        password_hash = await self.hasher.hash(command.password)
        credential = await self.store.create_credential(
            command.username, command.email, password_hash, REGISTRATION_ROLE.value,
        )
        subject_id = SubjectId(credential.id)

        try:
            await self.store.create_personal_detail(subject_id, first_name, last_name)
            await self.store.create_medical_record(subject_id)
            await self.store.create_education_record(subject_id, education)
        except RegistryError:
            await self._undo_registration(subject_id)
            raise

        logger.info(
            "Subject registered",
            extra={
                "subject_id": subject_id,
                "operation": Operation.REGISTER_SUBJECT.value,
                "role": REGISTRATION_ROLE.value,
            },
        )
        return subject_id

    async def _undo_registration(self, subject_id: SubjectId) -> None:
        try:
            await self.store.delete_subject(subject_id)
            logger.warning(
                "Registration rolled back after a failed child write",
                extra={"subject_id": subject_id, "operation": "undo_registration"},
            )
        except RegistryError as e:
            logger.error(
                f"Registration compensation failed, partial subject left behind: {e.message}",
                extra={"subject_id": subject_id, "error_code": e.code},
            )

    # ─── Update ─────────────────────────────────────────────────

    async def update_subject(
        self, caller_role: Role, raw_subject_id: str | None, command: UpdateSubjectCommand,
    ) -> tuple[CredentialLike, EducationLike | None]:
        subject_id = parse_subject_id(raw_subject_id)
        require(caller_role, Operation.UPDATE_SUBJECT)

        current = await self.store.get_credential(subject_id)
        if current is None:
            raise NotFoundError("Subject", str(subject_id))

        if command.email is not None and await self.store.find_credential_by_email(
            command.email, exclude=subject_id,
        ):
            raise ConflictError("email")
        if command.username is not None and await self.store.find_credential_by_username(
            command.username, exclude=subject_id,
        ):
            raise ConflictError("username")

        changes = build_credential_changes(
            current.username, current.email, command.username, command.email,
        )
        if password_supplied(command.password):
            validate_password(command.password)
        education_fields = None
        if command.education is not None:
            existing = await self.store.get_education_record(subject_id)
            education_fields = education_fields_for_upsert(
                command.education, record_exists=existing is not None,
            )
        if password_supplied(command.password):
            changes["password_hash"] = await self.hasher.hash(command.password)

        snapshot = {
            "username": current.username,
            "email": current.email,
            "password_hash": current.password_hash,
        }
        updated = await self.store.update_credential(subject_id, changes)
        if updated is None:
            raise NotFoundError("Subject", str(subject_id))

        education = None
        if education_fields is not None:
            try:
                education = await self.store.upsert_education_record(
                    subject_id, education_fields,
                )
            except RegistryError:
                if changes:
                    await self._restore_credential(subject_id, snapshot)
                raise

        logger.info(
            "Subject updated",
            extra={
                "subject_id": subject_id,
                "operation": Operation.UPDATE_SUBJECT.value,
                "field": ",".join(sorted(changes)) or None,
            },
        )
        return updated, education

    async def _restore_credential(self, subject_id: SubjectId, snapshot: dict[str, str]) -> None:
        try:
            await self.store.update_credential(subject_id, snapshot)
        except RegistryError as e:
            logger.error(
                f"Credential restore failed after education upsert error: {e.message}",
                extra={"subject_id": subject_id, "error_code": e.code},
            )

    # ─── Read ───────────────────────────────────────────────────

    async def read_subject(
        self, caller_role: Role, raw_subject_id: str | None,
    ) -> tuple[CredentialLike, EducationLike | None]:
        subject_id = parse_subject_id(raw_subject_id)
        require(caller_role, Operation.READ_SUBJECT, protect_reads=self.protect_reads)
        credential = await self.store.get_credential(subject_id)
        if credential is None:
            raise NotFoundError("Subject", str(subject_id))
        education = await self.store.get_education_record(subject_id)
        return credential, education
