"""Account Schemas - balance, deposits, and purchase/return receipts.

Invariants:
    - DepositRequest.amount follows core/money.validate_deposit exactly: > 0,
      <= 1,000,000.00, no sub-cent value (trailing zeros such as "10.500" are fine)
"""

from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, field_validator

from bookstore.core.domain_types import PurchaseReceipt
from bookstore.core.errors import InvalidAmountError
from bookstore.core.money import format_money, validate_deposit


class BalanceResponse(BaseModel):
    balance: str

    @classmethod
    def from_amount(cls, amount: Decimal) -> "BalanceResponse":
        return cls(balance=format_money(amount))


class DepositRequest(BaseModel):
    amount: Decimal

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v: Decimal) -> Decimal:
        try:
            return validate_deposit(v)
        except InvalidAmountError as e:
            raise ValueError(e.message) from e


class ReceiptResponse(BaseModel):
    """Outcome of a committed buy or return."""
    status: Literal["owned", "returned"]
    item_id: UUID
    price: str
    balance: str

    @classmethod
    def from_receipt(cls, receipt: PurchaseReceipt) -> "ReceiptResponse":
        return cls(
            status=receipt.outcome.value,
            item_id=receipt.item_id,
            price=format_money(receipt.price),
            balance=format_money(receipt.balance),
        )
