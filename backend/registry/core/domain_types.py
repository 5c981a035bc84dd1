"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - SubjectId wraps UUID — the Credential id shared by every child record
    - Roles and gated operations encoded as Enums — no raw string matching
    - UNSET_FIELD ("N/A") is only ever seen at the persistence and wire boundary;
      inside the domain an unset name is None

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and compare equal to stored column values
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

SubjectId = NewType("SubjectId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

UNSET_FIELD = "N/A"

# bcrypt reads at most 72 bytes of input.
MAX_PASSWORD_BYTES = 72


# ─── Enums ───────────────────────────────────────────────────────

class Role(str, Enum):
    """Credential roles — drive authorization and join-time visibility."""
    ADMIN = "admin"
    STAFF = "staff"
    STUDENT = "student"


class Operation(str, Enum):
    """Operations decided by the access gate."""
    LIST_ACCOUNTS = "list_accounts"
    REGISTER_SUBJECT = "register_subject"
    UPDATE_SUBJECT = "update_subject"
    READ_SUBJECT = "read_subject"
    CONFIRM_PASSWORD = "confirm_password"


# Registration always creates staff accounts; students enter through another path.
REGISTRATION_ROLE = Role.STAFF

EDUCATION_DETAIL_FIELDS = (
    "year_level", "section", "department", "strand", "course",
)
