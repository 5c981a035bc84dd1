"""Access tokens — issue/decode behaviour and failure mapping."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from registry.core.domain_types import Role, SubjectId
from registry.core.errors import AuthenticationError
from registry.infrastructure.auth_tokens import decode_access_token, issue_access_token

SECRET = "unit-test-secret-with-enough-length-for-hs256"


def test_issued_token_decodes_to_caller():
    sid = SubjectId(uuid4())
    caller = decode_access_token(issue_access_token(sid, Role.STAFF, SECRET), SECRET)
    assert caller.subject_id == sid
    assert caller.role is Role.STAFF


def test_wrong_secret_rejected():
    token = issue_access_token(SubjectId(uuid4()), Role.ADMIN, SECRET)
    with pytest.raises(AuthenticationError, match="Invalid token"):
        decode_access_token(token, SECRET + "-other")


def test_expired_token_rejected():
    token = issue_access_token(SubjectId(uuid4()), Role.ADMIN, SECRET, ttl_minutes=-1)
    with pytest.raises(AuthenticationError, match="expired"):
        decode_access_token(token, SECRET)


def test_unknown_role_rejected():
    token = jwt.encode({
        "sub": str(uuid4()), "role": "superuser",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }, SECRET, algorithm="HS256")
    with pytest.raises(AuthenticationError, match="claims"):
        decode_access_token(token, SECRET)


def test_missing_role_claim_rejected():
    token = jwt.encode({
        "sub": str(uuid4()),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }, SECRET, algorithm="HS256")
    with pytest.raises(AuthenticationError):
        decode_access_token(token, SECRET)
