"""Root conftest — shared test configuration."""

import os

# Tests never touch a real database or a shared secret
os.environ.setdefault("TOKEN_SECRET", "test-token-secret-of-at-least-32-bytes")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("LOG_FORMAT", "text")
