"""Account Routes - balance, deposits, owned books, buy and return.

Invariants:
    - Every route resolves the Access-Token before doing anything else
    - Balance and ownership writes go through PurchaseEngine only
    - GET /me/books returns [] for a user owning nothing
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.api.dependencies import get_current_user, get_purchase_engine
from bookstore.core.domain_types import ItemId, UserIdentity
from bookstore.core.errors import UnauthorizedError
from bookstore.infrastructure.database import get_db
from bookstore.schemas.account import (
    BalanceResponse, DepositRequest, ReceiptResponse,
)
from bookstore.schemas.books import BookResponse
from bookstore.services.account_store import AccountStore
from bookstore.services.ownership_ledger import OwnershipLedger
from bookstore.services.purchase_engine import PurchaseEngine

router = APIRouter(prefix="/api/v1/me", tags=["account"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    user: UserIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    balance = await AccountStore(db).get_balance(user.user_id)
    if balance is None:
        raise UnauthorizedError()
    return BalanceResponse.from_amount(balance)


@router.post("/balance/deposits", response_model=BalanceResponse)
async def deposit(
    body: DepositRequest,
    user: UserIdentity = Depends(get_current_user),
    engine: PurchaseEngine = Depends(get_purchase_engine),
):
    """Add cash to the signed-in user's balance."""
    balance = await engine.deposit(user.user_id, body.amount)
    return BalanceResponse.from_amount(balance)


@router.get("/books", response_model=list[BookResponse])
async def list_owned_books(
    user: UserIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await OwnershipLedger(db).list_owned_items(user.user_id)
    return [BookResponse.from_item(i) for i in items]


@router.post(
    "/books/{item_id}", response_model=ReceiptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def buy_book(
    item_id: UUID,
    user: UserIdentity = Depends(get_current_user),
    engine: PurchaseEngine = Depends(get_purchase_engine),
):
    """Buy a book: debit its price and record ownership atomically."""
    receipt = await engine.buy(user.user_id, ItemId(item_id))
    return ReceiptResponse.from_receipt(receipt)


@router.delete("/books/{item_id}", response_model=ReceiptResponse)
async def return_book(
    item_id: UUID,
    user: UserIdentity = Depends(get_current_user),
    engine: PurchaseEngine = Depends(get_purchase_engine),
):
    """Return a book: drop ownership and refund its price atomically."""
    receipt = await engine.return_item(user.user_id, ItemId(item_id))
    return ReceiptResponse.from_receipt(receipt)
