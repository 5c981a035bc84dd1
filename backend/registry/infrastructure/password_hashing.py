"""Password Hashing — bcrypt collaborator behind the PasswordHasher protocol.

Invariants:
    - Plaintext passwords are never stored or logged
    - hash() output always differs from the plaintext and embeds its own salt
    - bcrypt work runs in a worker thread, never on the event loop

Design Decisions:
    - bcrypt over a hand-rolled KDF: salt + cost factor handled by the library
    - asyncio.to_thread: a 12-round hash takes ~250ms, long enough to stall other requests
"""

import asyncio

import bcrypt

from registry.core.domain_types import MAX_PASSWORD_BYTES


class BcryptPasswordHasher:
    """Async bcrypt hasher implementing core.repository_protocols.PasswordHasher."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    async def hash(self, password: str) -> str:
        encoded = _encode(password)
        hashed = await asyncio.to_thread(
            bcrypt.hashpw, encoded, bcrypt.gensalt(rounds=self.rounds),
        )
        return hashed.decode("ascii")

    async def verify(self, password: str, password_hash: str) -> bool:
        try:
            encoded = _encode(password)
        except ValueError:
            return False
        try:
            return await asyncio.to_thread(
                bcrypt.checkpw, encoded, password_hash.encode("ascii"),
            )
        except ValueError:
            # Stored value is not a bcrypt hash.
            return False


def _encode(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password longer than {MAX_PASSWORD_BYTES} bytes")
    return encoded
