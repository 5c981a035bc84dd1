"""Root conftest — shared test configuration."""

import json
import os

# Never let tests pick up real secrets or a real database
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault(
    "FIELD_ENCRYPTION_KEYS",
    json.dumps({"v1": "11" * 32, "v2": "22" * 32}),
)
os.environ.setdefault("FIELD_KEY_VERSION", "v2")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_FORMAT", "text")
