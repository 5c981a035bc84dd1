"""bcrypt password hasher."""

import pytest

from registry.infrastructure.password_hashing import BcryptPasswordHasher


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


async def test_hash_is_salted_and_verifies(hasher):
    first = await hasher.hash("s3cret-pw")
    second = await hasher.hash("s3cret-pw")
    assert first != second
    assert first != "s3cret-pw"
    assert await hasher.verify("s3cret-pw", first)
    assert not await hasher.verify("wrong", first)


async def test_verify_tolerates_garbage_hash(hasher):
    assert await hasher.verify("s3cret-pw", "not-a-bcrypt-hash") is False


async def test_overlong_password_rejected(hasher):
    with pytest.raises(ValueError):
        await hasher.hash("x" * 73)
    assert await hasher.verify("x" * 73, await hasher.hash("x" * 72)) is False
