"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (placeholders only for local runs)
    - get_settings() is cached (lru_cache) — single instance per process
    - field_key_version must name a key present in field_encryption_keys

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Keyring as a JSON mapping (FIELD_ENCRYPTION_KEYS='{"v1": "<64 hex>"}'): rotating
      means adding a version and switching field_key_version, old rows stay readable
    - protect_subject_reads defaults to False: the open read endpoint is kept as found
      until someone decides otherwise
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://registry:registry@db:5432/registry"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Field encryption (AES-256-GCM, 32-byte keys as hex)
    field_encryption_keys: dict[str, str] = {"v1": "00" * 32}
    field_key_version: str = "v1"

    @model_validator(mode="after")
    def check_active_key(self) -> "Settings":
        if self.field_key_version not in self.field_encryption_keys:
            raise ValueError(
                f"field_key_version '{self.field_key_version}' "
                f"not in field_encryption_keys",
            )
        return self

    # Authentication collaborator
    jwt_secret: str = "registry-dev-secret-change-me-in-production"
    jwt_algorithm: str = "HS256"
    # Lifetime for tokens minted by issue_access_token (scripts, test fixtures)
    access_token_ttl_minutes: int = 60

    # Password hashing collaborator
    bcrypt_rounds: int = 12

    # Access policy
    protect_subject_reads: bool = False

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
