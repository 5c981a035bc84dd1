"""Service test fixtures — SQLite identity store, collaborators and FastAPI test client.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - The store runs against a real DatabaseSessionManager (session-per-call, as in production)
    - get_db_manager dependency overridden so routes use the test database
    - Tokens are minted with the same secret and TTL settings the app uses

Design Decisions:
    - File database over :memory:: the aggregation fan-out opens several connections
      at once, and each in-memory connection would see its own empty database
    - bcrypt rounds lowered to 4 through the root conftest environment
    - Role changes outside the API (set_role) go straight to the table: no production
      path demotes a subject
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

import registry.models  # noqa: F401
import registry.infrastructure.database as db_module
from registry.api.dependencies import get_field_codec
from registry.config import get_settings
from registry.core.domain_types import Role, SubjectId
from registry.core.field_codec import seal_field
from registry.db.base import Base
from registry.infrastructure.auth_tokens import issue_access_token
from registry.infrastructure.database import DatabaseSessionManager, get_db_manager
from registry.infrastructure.identity_store import SqlIdentityStore
from registry.infrastructure.password_hashing import BcryptPasswordHasher
from registry.main import app
from registry.models.credential import Credential


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()


@pytest.fixture
def store(db_manager):
    return SqlIdentityStore(db_manager)


@pytest.fixture
def codec():
    return get_field_codec()


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def seed_subject(store, codec, hasher):
    """Factory: write all four records for a subject directly through the store."""

    async def _seed(
        username: str,
        role: Role = Role.STAFF,
        education_level: str | None = "college",
        first_name: str | None = None,
        last_name: str | None = None,
        password: str = "s3cret-pw",
        with_personal: bool = True,
    ) -> SubjectId:
        credential = await store.create_credential(
            username, f"{username}@example.com", await hasher.hash(password), role.value,
        )
        subject_id = SubjectId(credential.id)
        if with_personal:
            await store.create_personal_detail(
                subject_id, seal_field(codec, first_name), seal_field(codec, last_name),
            )
        await store.create_medical_record(subject_id)
        if education_level is not None:
            await store.create_education_record(subject_id, {
                "education_level": education_level,
                "year_level": None, "section": None, "department": None,
                "strand": None, "course": None,
            })
        return subject_id

    return _seed


@pytest.fixture
def token_for():
    """Factory: bearer header for a subject/role pair."""
    settings = get_settings()

    def _token(subject_id: SubjectId, role: Role) -> dict[str, str]:
        token = issue_access_token(
            subject_id, role, settings.jwt_secret, settings.jwt_algorithm,
            ttl_minutes=settings.access_token_ttl_minutes,
        )
        return {"Authorization": f"Bearer {token}"}

    return _token


@pytest.fixture
async def client(db_manager):
    """FastAPI test client with the session manager dependency overridden."""
    app.dependency_overrides[get_db_manager] = lambda: db_manager

    original_manager = db_module.db_manager
    db_module.db_manager = db_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def set_role(db_manager):
    """Factory: change a subject's stored role behind the API's back."""

    async def _set_role(subject_id: SubjectId, role: Role) -> None:
        async with db_manager.session() as db:
            await db.execute(
                update(Credential).where(Credential.id == subject_id).values(role=role.value),
            )
            await db.commit()

    return _set_role
