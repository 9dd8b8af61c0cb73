"""Session Resolver - maps an opaque access token to exactly one user.

Invariants:
    - Empty or missing token -> UnauthorizedError without touching storage
    - Match is exact: case-sensitive, no trimming or normalization
    - Read-only: resolving never mutates state
    - Every failure raises the same UnauthorizedError (no hint whether the token ever existed)
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.core.domain_types import UserIdentity
from bookstore.core.errors import UnauthorizedError
from bookstore.core.repository_protocols import AccountStoreLike
from bookstore.services.account_store import AccountStore

logger = logging.getLogger(__name__)


class SessionResolver:
    """Resolves Access-Token values against the account store."""

    def __init__(self, db: AsyncSession):
        self.accounts: AccountStoreLike = AccountStore(db)

    async def resolve(self, token: str | None) -> UserIdentity:
        if not token:
            raise UnauthorizedError()
        identity = await self.accounts.get_by_token(token)
        if identity is None:
            logger.info("Rejected unknown access token", extra={"error_code": "UNAUTHORIZED"})
            raise UnauthorizedError()
        return identity
