"""Domain Types — verifies identity wrappers, enums and the sentinel constant."""

from uuid import uuid4

from registry.core.domain_types import (
    SubjectId, Role, Operation, UNSET_FIELD, REGISTRATION_ROLE,
)


def test_subject_id_wraps_uuid():
    uid = uuid4()
    assert SubjectId(uid) == uid


def test_role_has_three_members_matching_stored_values():
    assert {r.value for r in Role} == {"admin", "staff", "student"}
    assert Role("staff") is Role.STAFF


def test_operations_cover_every_admin_endpoint():
    assert len(Operation) == 5


def test_unset_sentinel_literal():
    assert UNSET_FIELD == "N/A"


def test_registration_creates_staff():
    assert REGISTRATION_ROLE is Role.STAFF
