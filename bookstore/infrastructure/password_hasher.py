"""Password Hasher - salted bcrypt hashing off the event loop.

Invariants:
    - Plaintext passwords are never stored or logged
    - verify() is constant-time in the hash comparison (bcrypt.checkpw)
    - Passwords longer than 72 bytes are rejected upstream (schemas/auth.py);
      bcrypt would otherwise ignore the tail

Design Decisions:
    - bcrypt work is CPU-bound: run in a worker thread via asyncio.to_thread so
      concurrent requests keep flowing
    - A precomputed dummy hash is checked for unknown usernames so login timing
      does not reveal which usernames exist
"""

import asyncio

import bcrypt


class PasswordHasher:
    """bcrypt wrapper with a configurable work factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._dummy_hash = bcrypt.hashpw(
            b"dummy-password", bcrypt.gensalt(rounds=rounds),
        )

    async def hash(self, password: str) -> str:
        hashed = await asyncio.to_thread(
            bcrypt.hashpw,
            password.encode("utf-8"),
            bcrypt.gensalt(rounds=self.rounds),
        )
        return hashed.decode("utf-8")

    async def verify(self, password: str, password_hash: str | None) -> bool:
        """Check a password against a stored hash (None burns equal time and fails)."""
        candidate = password.encode("utf-8")
        if password_hash is None:
            await asyncio.to_thread(bcrypt.checkpw, candidate, self._dummy_hash)
            return False
        return await asyncio.to_thread(
            bcrypt.checkpw, candidate, password_hash.encode("utf-8"),
        )
