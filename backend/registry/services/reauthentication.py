"""Re-authentication — confirm the caller's own password before sensitive admin actions.

Invariants:
    - The role checked is the one stored on the credential, not the one in the token
    - Students are rejected even when the password matches
    - Only a boolean leaves this service; the stored hash never does
"""

import logging

from registry.core.access_gate import require
from registry.core.domain_types import SubjectId, Operation
from registry.core.errors import NotFoundError
from registry.core.repository_protocols import IdentityStore, PasswordHasher

logger = logging.getLogger(__name__)


class PasswordConfirmation:

    def __init__(self, store: IdentityStore, hasher: PasswordHasher):
        self.store = store
        self.hasher = hasher

    async def confirm(self, caller_id: SubjectId, password: str) -> bool:
        credential = await self.store.get_credential(caller_id)
        if credential is None:
            raise NotFoundError("Subject", str(caller_id))
        require(credential.role, Operation.CONFIRM_PASSWORD)

        matched = await self.hasher.verify(password, credential.password_hash)
        if not matched:
            logger.warning(
                "Password confirmation failed",
                extra={"subject_id": caller_id, "operation": Operation.CONFIRM_PASSWORD.value},
            )
        return matched
