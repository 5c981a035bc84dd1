"""Reconciliation Engine — tests for subject registration, update and read.

Tests cover:
    - Registration gated to admin; conflicts on username (first) and email write nothing
    - Bare identifiers ("u1", "e1") register and list; only blank ones are rejected
    - Passwords over the bcrypt byte limit are a ValidationError, not a hashing crash
    - Registration writes all four records, role forced to staff, names sealed
    - Registration compensates (deletes the credential) when a child write fails
    - Update: NotFound before education, email conflict reported first,
      password hash untouched when omitted and replaced when supplied
    - Education upsert creates on absence and updates the same row afterwards
    - Update restores the credential when the education upsert fails
    - Read returns credential + education, NotFound for unknown ids
"""

from uuid import uuid4
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from registry.core.access_gate import visible_roles_for_listing
from registry.core.domain_types import Role, SubjectId, UNSET_FIELD
from registry.core.errors import (
    AuthorizationError, ConflictError, NotFoundError, StorageError, ValidationError,
)
from registry.models.credential import Credential
from registry.models.education_record import EducationRecord
from registry.models.medical_record import MedicalRecord
from registry.models.personal_detail import PersonalDetail
from registry.services.aggregation import AccountAggregator
from registry.services.reconciliation import (
    RegisterSubjectCommand, SubjectReconciler, UpdateSubjectCommand,
)

ALL_MODELS = (Credential, PersonalDetail, MedicalRecord, EducationRecord)


def _register(username="u1", email="e1@example.com", level="college", **extra):
    return RegisterSubjectCommand(
        username=username, password="s3cret-pw", email=email,
        education={"education_level": level, **extra.pop("education", {})},
        **extra,
    )


async def _counts(db_manager) -> dict[str, int]:
    counts = {}
    async with db_manager.session() as db:
        for model in ALL_MODELS:
            counts[model.__tablename__] = (
                await db.execute(select(func.count()).select_from(model))
            ).scalar_one()
    return counts


@pytest.fixture
def reconciler(store, codec, hasher):
    return SubjectReconciler(store, codec, hasher)


# ─── register_subject ────────────────────────────────────────────

async def test_register_writes_all_four_records(reconciler, store, db_manager):
    subject_id = await reconciler.register_subject(Role.ADMIN, _register(
        education={"course": "BSCS", "department": "CCS"},
    ))

    assert await _counts(db_manager) == {
        "credentials": 1, "personal_details": 1,
        "medical_records": 1, "education_records": 1,
    }
    credential = await store.get_credential(subject_id)
    assert credential.role == "staff"
    assert credential.password_hash != "s3cret-pw"
    education = await store.get_education_record(subject_id)
    assert (education.education_level, education.course, education.section) == ("college", "BSCS", None)
    names = await store.get_personal_names(subject_id)
    assert (names.first_name, names.last_name) == (UNSET_FIELD, UNSET_FIELD)


async def test_register_seals_supplied_names(reconciler, store, codec):
    subject_id = await reconciler.register_subject(
        Role.ADMIN, _register(first_name="Ana", last_name="Cruz"),
    )
    names = await store.get_personal_names(subject_id)
    assert names.first_name != "Ana"
    assert codec.decrypt(names.first_name) == "Ana"
    assert codec.decrypt(names.last_name) == "Cruz"


@pytest.mark.parametrize("role", [Role.STAFF, Role.STUDENT])
async def test_register_requires_admin(reconciler, db_manager, role):
    with pytest.raises(AuthorizationError):
        await reconciler.register_subject(role, _register())
    assert sum((await _counts(db_manager)).values()) == 0


async def test_register_duplicate_username_writes_nothing(reconciler, db_manager):
    await reconciler.register_subject(Role.ADMIN, _register())
    before = await _counts(db_manager)

    with pytest.raises(ConflictError) as exc_info:
        await reconciler.register_subject(Role.ADMIN, _register(email="e1@example.com"))

    assert exc_info.value.field == "username"
    assert await _counts(db_manager) == before


async def test_register_duplicate_email_writes_nothing(reconciler, db_manager):
    await reconciler.register_subject(Role.ADMIN, _register())
    before = await _counts(db_manager)

    with pytest.raises(ConflictError) as exc_info:
        await reconciler.register_subject(Role.ADMIN, _register(username="u2"))

    assert exc_info.value.field == "email"
    assert await _counts(db_manager) == before


async def test_bare_identifiers_register_and_list(reconciler, store, codec):
    subject_id = await reconciler.register_subject(Role.ADMIN, RegisterSubjectCommand(
        username="u1", password="pw", email="e1",
        education={"education_level": "college"},
    ))

    summaries = await AccountAggregator(store, codec).list_by_education_level(
        "college", visible_roles_for_listing(),
    )
    assert [(s.subject_id, s.first_name, s.last_name) for s in summaries] == [
        (subject_id, None, None),
    ]


async def test_register_rejects_password_over_byte_limit(reconciler, db_manager):
    with pytest.raises(ValidationError) as exc_info:
        await reconciler.register_subject(Role.ADMIN, RegisterSubjectCommand(
            username="u1", password="é" * 40, email="e1",
            education={"education_level": "college"},
        ))
    assert exc_info.value.field == "password"
    assert sum((await _counts(db_manager)).values()) == 0


async def test_register_requires_education_level_before_writing(reconciler, db_manager):
    with pytest.raises(ValidationError):
        await reconciler.register_subject(Role.ADMIN, _register(level=""))
    assert sum((await _counts(db_manager)).values()) == 0


async def test_register_lost_race_still_reports_conflict(store, codec, hasher, db_manager):
    """The fast-path lookups miss a concurrent insert; the unique index catches it."""
    await store.create_credential("u1", "e1@example.com", "h", "staff")
    racing_store = AsyncMock(wraps=store)
    racing_store.find_credential_by_username.return_value = None
    racing_store.find_credential_by_email.return_value = None

    with pytest.raises(ConflictError) as exc_info:
        await SubjectReconciler(racing_store, codec, hasher).register_subject(Role.ADMIN, _register())

    assert exc_info.value.field == "username"
    assert (await _counts(db_manager))["credentials"] == 1


async def test_register_compensates_when_child_write_fails(store, codec, hasher, db_manager):
    failing_store = AsyncMock(wraps=store)
    failing_store.create_education_record.side_effect = StorageError("boom", "commit")

    with pytest.raises(StorageError):
        await SubjectReconciler(failing_store, codec, hasher).register_subject(Role.ADMIN, _register())

    failing_store.delete_subject.assert_awaited_once()
    assert sum((await _counts(db_manager)).values()) == 0


# ─── update_subject ──────────────────────────────────────────────

async def test_update_unknown_id_is_not_found_before_education(store, codec, hasher):
    spy = AsyncMock(wraps=store)
    reconciler = SubjectReconciler(spy, codec, hasher)

    with pytest.raises(NotFoundError):
        await reconciler.update_subject(
            Role.ADMIN, str(uuid4()),
            UpdateSubjectCommand(education={"education_level": "college"}),
        )

    spy.get_education_record.assert_not_awaited()
    spy.upsert_education_record.assert_not_awaited()


@pytest.mark.parametrize("raw_id", ["", "undefined", "not-a-uuid", None])
async def test_update_malformed_id_fails_before_storage(store, codec, hasher, raw_id):
    spy = AsyncMock(wraps=store)
    with pytest.raises(ValidationError):
        await SubjectReconciler(spy, codec, hasher).update_subject(
            Role.ADMIN, raw_id, UpdateSubjectCommand(email="x@example.com"),
        )
    assert spy.mock_calls == []


async def test_update_requires_admin(reconciler, seed_subject):
    sid = await seed_subject("clerk")
    with pytest.raises(AuthorizationError):
        await reconciler.update_subject(Role.STAFF, str(sid), UpdateSubjectCommand(email="x@example.com"))


async def test_update_reports_email_conflict_even_with_unique_username(reconciler, seed_subject, store):
    target = await seed_subject("clerk")
    await seed_subject("other")

    with pytest.raises(ConflictError) as exc_info:
        await reconciler.update_subject(Role.ADMIN, str(target), UpdateSubjectCommand(
            email="other@example.com", username="brand-new",
        ))

    assert exc_info.value.field == "email"
    assert (await store.get_credential(target)).username == "clerk"


async def test_update_reports_username_conflict(reconciler, seed_subject):
    target = await seed_subject("clerk")
    await seed_subject("other")
    with pytest.raises(ConflictError) as exc_info:
        await reconciler.update_subject(Role.ADMIN, str(target), UpdateSubjectCommand(username="other"))
    assert exc_info.value.field == "username"


async def test_update_may_keep_own_email(reconciler, seed_subject):
    target = await seed_subject("clerk")
    credential, _ = await reconciler.update_subject(
        Role.ADMIN, str(target), UpdateSubjectCommand(email="clerk@example.com", username="clerk2"),
    )
    assert (credential.email, credential.username) == ("clerk@example.com", "clerk2")


async def test_update_without_password_keeps_hash(reconciler, seed_subject, store):
    target = await seed_subject("clerk")
    old_hash = (await store.get_credential(target)).password_hash

    credential, education = await reconciler.update_subject(
        Role.ADMIN, str(target), UpdateSubjectCommand(email="new@example.com"),
    )

    assert credential.password_hash == old_hash
    assert credential.email == "new@example.com"
    assert education is None


async def test_update_with_password_rehashes(reconciler, seed_subject, store, hasher):
    target = await seed_subject("clerk")
    old_hash = (await store.get_credential(target)).password_hash

    credential, _ = await reconciler.update_subject(
        Role.ADMIN, str(target), UpdateSubjectCommand(password="brand-new-pw"),
    )

    assert credential.password_hash not in (old_hash, "brand-new-pw")
    assert await hasher.verify("brand-new-pw", credential.password_hash)


async def test_update_rejects_password_over_byte_limit(reconciler, seed_subject, store):
    target = await seed_subject("clerk")
    old_hash = (await store.get_credential(target)).password_hash
    with pytest.raises(ValidationError) as exc_info:
        await reconciler.update_subject(
            Role.ADMIN, str(target), UpdateSubjectCommand(password="é" * 40),
        )
    assert exc_info.value.field == "password"
    assert (await store.get_credential(target)).password_hash == old_hash


async def test_education_upsert_creates_then_updates_same_row(reconciler, seed_subject, db_manager):
    target = await seed_subject("clerk", education_level=None)

    _, created = await reconciler.update_subject(Role.ADMIN, str(target), UpdateSubjectCommand(
        education={"education_level": "college", "course": "BSCS"},
    ))
    _, updated = await reconciler.update_subject(Role.ADMIN, str(target), UpdateSubjectCommand(
        education={"education_level": "graduate", "course": "MSCS"},
    ))

    assert created.subject_id == updated.subject_id == target
    assert updated.id == created.id
    assert (updated.education_level, updated.course) == ("graduate", "MSCS")
    assert (await _counts(db_manager))["education_records"] == 1


async def test_education_create_without_level_is_rejected_before_writes(reconciler, seed_subject, store):
    target = await seed_subject("clerk", education_level=None)
    with pytest.raises(ValidationError):
        await reconciler.update_subject(Role.ADMIN, str(target), UpdateSubjectCommand(
            email="changed@example.com", education={"section": "B"},
        ))
    assert (await store.get_credential(target)).email == "clerk@example.com"


async def test_update_restores_credential_when_education_upsert_fails(store, codec, hasher, seed_subject):
    target = await seed_subject("clerk")
    failing_store = AsyncMock(wraps=store)
    failing_store.upsert_education_record.side_effect = StorageError("boom", "commit")

    with pytest.raises(StorageError):
        await SubjectReconciler(failing_store, codec, hasher).update_subject(
            Role.ADMIN, str(target),
            UpdateSubjectCommand(email="changed@example.com", education={"section": "B"}),
        )

    assert (await store.get_credential(target)).email == "clerk@example.com"


# ─── read_subject ────────────────────────────────────────────────

async def test_read_returns_credential_and_education(reconciler, seed_subject):
    target = await seed_subject("clerk")
    credential, education = await reconciler.read_subject(Role.STUDENT, str(target))
    assert credential.username == "clerk"
    assert education.education_level == "college"


async def test_read_unknown_id_is_not_found(reconciler):
    with pytest.raises(NotFoundError):
        await reconciler.read_subject(Role.ADMIN, str(uuid4()))


async def test_protected_reads_reject_non_admins(store, codec, hasher, seed_subject):
    target = await seed_subject("clerk")
    reconciler = SubjectReconciler(store, codec, hasher, protect_reads=True)
    with pytest.raises(AuthorizationError):
        await reconciler.read_subject(Role.STAFF, str(target))
    credential, _ = await reconciler.read_subject(Role.ADMIN, str(target))
    assert credential.id == target
