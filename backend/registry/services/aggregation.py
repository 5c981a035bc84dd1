"""Aggregation Engine — role-gated EducationRecord → Credential → PersonalDetail listing.

Invariants:
    - Output order equals the order of the education query (insertion order)
    - A hidden or unresolved credential drops its row; it is never an error
    - A subject without PersonalDetail is dropped whole, never emitted half-filled
    - Name lookups run concurrently, and ALL must finish before assembly
    - Any storage failure in any lookup aborts the call: no partial result

Design Decisions:
    - visible_roles injected by the caller (from core/access_gate.py): the join
      filters by a set it was handed and contains no authorization rules itself
    - asyncio.TaskGroup over gather: the first failing lookup cancels its siblings,
      and the failure is unwrapped from the ExceptionGroup so callers see the
      original StorageError
"""

import asyncio
import logging

from registry.core.aggregate_rows import (
    AccountSummary, filter_visible, assemble_summaries,
)
from registry.core.domain_types import Role
from registry.core.field_codec import FieldCodec
from registry.core.repository_protocols import IdentityStore

logger = logging.getLogger(__name__)


class AccountAggregator:
    """Lists subjects of one education level with decrypted names."""

    def __init__(self, store: IdentityStore, codec: FieldCodec):
        self.store = store
        self.codec = codec

    async def list_by_education_level(
        self, education_level: str, visible_roles: frozenset[Role],
    ) -> list[AccountSummary]:
        links = await self.store.list_education_links(education_level)
        subject_ids = filter_visible(links, visible_roles)

        try:
            async with asyncio.TaskGroup() as tg:
                lookups = [
                    tg.create_task(self.store.get_personal_names(subject_id))
                    for subject_id in subject_ids
                ]
        except ExceptionGroup as eg:
            raise eg.exceptions[0]
        names = [lookup.result() for lookup in lookups]
        summaries = assemble_summaries(subject_ids, names, self.codec)

        logger.info(
            f"Aggregated {len(summaries)} of {len(links)} education matches",
            extra={
                "operation": "list_accounts",
                "education_level": education_level,
                "result_count": len(summaries),
            },
        )
        return summaries
