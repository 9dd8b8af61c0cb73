"""Auth Service - registration, login, logout, and account deletion.

Invariants:
    - Passwords are stored as bcrypt hashes only
    - Each login issues a fresh token; the previous one stops resolving
    - Unknown username and wrong password are indistinguishable to the caller
    - Account deletion removes ownership records in the same transaction
    - Duplicate usernames are rejected even when two registrations race
      (unique constraint -> UsernameTakenError)

Design Decisions:
    - Tokens are uuid4 strings: opaque, unguessable, fixed length
    - Service commits its own unit of work on the request session; stores never commit
"""

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.core.domain_types import UserIdentity
from bookstore.core.errors import InvalidCredentialsError, UsernameTakenError
from bookstore.infrastructure.password_hasher import PasswordHasher
from bookstore.services.account_store import AccountStore
from bookstore.services.ownership_ledger import OwnershipLedger

logger = logging.getLogger(__name__)


def new_access_token() -> str:
    return str(uuid.uuid4())


class AuthService:
    """Account lifecycle on top of the account store."""

    def __init__(self, db: AsyncSession, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher
        self.accounts = AccountStore(db)

    async def register(self, username: str, password: str) -> str:
        """Create an account with a zero balance. Returns its first access token."""
        if await self.accounts.get_by_username(username) is not None:
            raise UsernameTakenError(username)
        password_hash = await self.hasher.hash(password)
        token = new_access_token()
        try:
            user = await self.accounts.create(username, password_hash, token)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise UsernameTakenError(username)
        logger.info("User registered", extra={"user_id": str(user.id)})
        return token

    async def login(self, username: str, password: str) -> str:
        """Verify credentials and rotate the access token."""
        user = await self.accounts.get_by_username(username)
        stored_hash = user.password_hash if user else None
        verified = await self.hasher.verify(password, stored_hash)
        if user is None or not verified:
            raise InvalidCredentialsError()
        token = new_access_token()
        await self.accounts.set_token(user.id, token)
        await self.db.commit()
        logger.info("User logged in", extra={"user_id": str(user.id)})
        return token

    async def logout(self, identity: UserIdentity) -> None:
        await self.accounts.set_token(identity.user_id, None)
        await self.db.commit()
        logger.info("User signed out", extra={"user_id": str(identity.user_id)})

    async def delete_account(self, identity: UserIdentity) -> None:
        # Same lock order as the purchase engine: user row first
        await self.accounts.lock_user(identity.user_id)
        removed = await OwnershipLedger(self.db).remove_all(identity.user_id)
        await self.accounts.delete(identity.user_id)
        await self.db.commit()
        logger.info(
            f"User deleted with {removed} owned book(s)",
            extra={"user_id": str(identity.user_id)},
        )
