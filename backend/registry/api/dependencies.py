"""API Dependencies — FastAPI providers for the caller, the store and the services.

Invariants:
    - Every admin route resolves the caller from a bearer token before doing anything
    - Services are built per request from process-wide collaborators (store, codec, hasher)

Design Decisions:
    - Codec and hasher cached per process: building AESGCM ciphers per request is wasted work
    - Dependencies overridable in tests via app.dependency_overrides
"""

from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from registry.config import get_settings
from registry.core.errors import AuthenticationError
from registry.core.field_codec import FieldCodec
from registry.infrastructure.auth_tokens import CallerContext, decode_access_token
from registry.infrastructure.database import DatabaseSessionManager, get_db_manager
from registry.infrastructure.identity_store import SqlIdentityStore
from registry.infrastructure.password_hashing import BcryptPasswordHasher
from registry.services.aggregation import AccountAggregator
from registry.services.reauthentication import PasswordConfirmation
from registry.services.reconciliation import SubjectReconciler

_bearer = HTTPBearer(auto_error=False)


@lru_cache
def get_field_codec() -> FieldCodec:
    settings = get_settings()
    return FieldCodec.from_hex(
        settings.field_encryption_keys, settings.field_key_version,
    )


@lru_cache
def get_password_hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=get_settings().bcrypt_rounds)


def get_identity_store(
    manager: DatabaseSessionManager = Depends(get_db_manager),
) -> SqlIdentityStore:
    return SqlIdentityStore(manager)


async def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> CallerContext:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError()
    settings = get_settings()
    return decode_access_token(
        credentials.credentials, settings.jwt_secret, settings.jwt_algorithm,
    )


def get_aggregator(
    store: SqlIdentityStore = Depends(get_identity_store),
    codec: FieldCodec = Depends(get_field_codec),
) -> AccountAggregator:
    return AccountAggregator(store, codec)


def get_reconciler(
    store: SqlIdentityStore = Depends(get_identity_store),
    codec: FieldCodec = Depends(get_field_codec),
    hasher: BcryptPasswordHasher = Depends(get_password_hasher),
) -> SubjectReconciler:
    return SubjectReconciler(
        store, codec, hasher,
        protect_reads=get_settings().protect_subject_reads,
    )


def get_password_confirmation(
    store: SqlIdentityStore = Depends(get_identity_store),
    hasher: BcryptPasswordHasher = Depends(get_password_hasher),
) -> PasswordConfirmation:
    return PasswordConfirmation(store, hasher)
