"""Access Tokens — thin PyJWT collaborator that identifies the caller.

Invariants:
    - Tokens carry exactly two claims the registry reads: sub (subject UUID) and role
    - Any decode failure (bad signature, expired, missing claim, bad UUID) is an
      AuthenticationError — callers never see PyJWT exceptions

Design Decisions:
    - HS256 shared secret from settings: issuance lives in the login service, the
      registry only verifies; issue_access_token exists for scripts and tests
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from registry.core.domain_types import SubjectId, Role
from registry.core.errors import AuthenticationError


@dataclass(frozen=True)
class CallerContext:
    """Authenticated caller as asserted by the token."""
    subject_id: SubjectId
    role: Role


def issue_access_token(
    subject_id: SubjectId, role: Role, secret: str,
    algorithm: str = "HS256", ttl_minutes: int = 60,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(subject_id),
        "role": Role(role).value,
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> CallerContext:
    try:
        claims = jwt.decode(
            token, secret, algorithms=[algorithm],
            options={"require": ["sub", "role", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")
    try:
        return CallerContext(
            subject_id=SubjectId(UUID(claims["sub"])),
            role=Role(claims["role"]),
        )
    except (ValueError, TypeError):
        raise AuthenticationError("Invalid token claims")
