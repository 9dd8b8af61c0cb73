"""Root conftest - shared test configuration."""

import os

# Cheap bcrypt and no backoff sleeps in tests; never touch a real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("TRANSACTION_BASE_DELAY_MS", "0")
os.environ.setdefault("LOG_FORMAT", "text")
