"""Bank-transfer instructions shown after a transfer checkout.

Settlement happens outside the storefront: the shopper pays into the
restaurant's account using the order id as narration, and staff confirm
receipt manually.
"""

import os
from dataclasses import dataclass

from ordering.checkout.order import Order
from ordering.checkout.pricing import PriceBreakdown

DEFAULT_BANK_NAME = "First Bank Nigeria"
DEFAULT_ACCOUNT_NAME = "Pepe's Brunch & Cafe"
DEFAULT_ACCOUNT_NUMBER = "3081234567"
DEFAULT_BANK_CODE = "011"


@dataclass(frozen=True)
class BankAccount:
    bank_name: str
    account_name: str
    account_number: str
    bank_code: str

    @classmethod
    def from_env(cls) -> "BankAccount":
        return cls(
            bank_name=os.environ.get("TRANSFER_BANK_NAME", DEFAULT_BANK_NAME),
            account_name=os.environ.get("TRANSFER_ACCOUNT_NAME", DEFAULT_ACCOUNT_NAME),
            account_number=os.environ.get("TRANSFER_ACCOUNT_NUMBER", DEFAULT_ACCOUNT_NUMBER),
            bank_code=os.environ.get("TRANSFER_BANK_CODE", DEFAULT_BANK_CODE),
        )


@dataclass(frozen=True)
class TransferInstructions:
    order_id: str
    account: BankAccount
    amounts: PriceBreakdown

    @property
    def narration(self) -> str:
        return f"Order {self.order_id}"

    @classmethod
    def for_order(cls, order: Order, account: BankAccount | None = None) -> "TransferInstructions":
        return cls(order_id=order.order_id, account=account or BankAccount.from_env(), amounts=order.amounts)

    def as_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "bank_name": self.account.bank_name,
            "account_name": self.account.account_name,
            "account_number": self.account.account_number,
            "bank_code": self.account.bank_code,
            "amount": str(self.amounts.grand_total),
            "narration": self.narration,
        }
