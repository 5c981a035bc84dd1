"""Aggregate Rows — pure filtering and assembly steps of the account listing join.

Invariants:
    - All functions are PURE: no IO, no async, no DB
    - filter_visible keeps step-1 order and drops rows whose credential is
      missing (dangling link) or whose role is outside the visible set
    - assemble_summaries drops subjects without a PersonalDetail row; it never
      emits a partial record
    - Sentinel names are passed through as None without touching the codec

Design Decisions:
    - Left-join-then-filter expressed as data (EducationLink.role may be None)
      rather than an inner join, so "credential missing" and "credential hidden"
      are the same non-error outcome
"""

from dataclasses import dataclass
from typing import Iterable, Sequence

from registry.core.domain_types import SubjectId, Role
from registry.core.field_codec import FieldCodec, open_field


@dataclass(frozen=True)
class EducationLink:
    """One EducationRecord match resolved against its Credential (role None = unresolved)."""
    subject_id: SubjectId
    role: str | None


@dataclass(frozen=True)
class StoredNames:
    """PersonalDetail projection as stored: ciphertext or sentinel per field."""
    first_name: str
    last_name: str


@dataclass(frozen=True)
class AccountSummary:
    """Flattened listing row. None means the name was never set."""
    subject_id: SubjectId
    first_name: str | None
    last_name: str | None


def filter_visible(
    links: Iterable[EducationLink], visible_roles: frozenset[Role],
) -> list[SubjectId]:
    """Subjects whose credential resolved and whose role is visible, in input order."""
    visible = {role.value for role in visible_roles}
    return [
        link.subject_id for link in links
        if link.role is not None and link.role in visible
    ]


def assemble_summaries(
    subject_ids: Sequence[SubjectId],
    names: Sequence[StoredNames | None],
    codec: FieldCodec,
) -> list[AccountSummary]:
    """Pair each subject with its fetched names, open them, skip subjects without names."""
    summaries = []
    for subject_id, stored in zip(subject_ids, names, strict=True):
        if stored is None:
            continue
        summaries.append(AccountSummary(
            subject_id=subject_id,
            first_name=open_field(codec, stored.first_name),
            last_name=open_field(codec, stored.last_name),
        ))
    return summaries
