"""
Transaction Records

Immutable history entries. A sale snapshots each line item's name, price,
quantity and type at sale time, so later catalogue edits never rewrite past
sales. A loan payment snapshots the balance before and after.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .records import (
    StorageRecord, optional_int, parse_datetime, parse_decimal, to_storable
)


class TransactionType(Enum):
    """Kinds of ledger entries"""
    SALE = "sale"
    LOAN_PAYMENT = "loan_payment"


@dataclass(frozen=True)
class LineItem:
    """One sold product line, denormalized at sale time"""
    product_id: Optional[int]
    name: str
    price: Decimal
    quantity: int
    type: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineItem':
        return cls(
            product_id=optional_int(data.get('product_id')),
            name=data.get('name') or "",
            price=parse_decimal(data['price'], 'price'),
            quantity=int(data['quantity']),
            type=data.get('type'),
        )


@dataclass(frozen=True)
class Sale(StorageRecord):
    """Sale of one or more line items to a client"""
    id: int
    client_id: int
    items: Tuple[LineItem, ...]
    total: Decimal
    paid: Decimal
    loan: Decimal
    date: datetime
    user_id: Optional[int] = None

    transaction_type = TransactionType.SALE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.transaction_type.value,
            "client_id": self.client_id,
            "items": [item.to_dict() for item in self.items],
            "total": str(self.total),
            "paid": str(self.paid),
            "loan": str(self.loan),
            "date": to_storable(self.date),
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sale':
        return cls(
            id=int(data['id']),
            client_id=int(data['client_id']),
            items=tuple(LineItem.from_dict(item) for item in data.get('items', [])),
            total=parse_decimal(data['total'], 'total'),
            paid=parse_decimal(data['paid'], 'paid'),
            loan=parse_decimal(data['loan'], 'loan'),
            date=parse_datetime(data['date']),
            user_id=optional_int(data.get('user_id')),
        )


@dataclass(frozen=True)
class LoanPayment(StorageRecord):
    """Repayment against a client's outstanding loan"""
    id: int
    client_id: int
    amount: Decimal
    previous_loan: Decimal
    new_loan: Decimal
    date: datetime
    user_id: Optional[int] = None

    transaction_type = TransactionType.LOAN_PAYMENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.transaction_type.value,
            "client_id": self.client_id,
            "amount": str(self.amount),
            "previous_loan": str(self.previous_loan),
            "new_loan": str(self.new_loan),
            "date": to_storable(self.date),
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoanPayment':
        return cls(
            id=int(data['id']),
            client_id=int(data['client_id']),
            amount=parse_decimal(data['amount'], 'amount'),
            previous_loan=parse_decimal(data['previous_loan'], 'previous_loan'),
            new_loan=parse_decimal(data['new_loan'], 'new_loan'),
            date=parse_datetime(data['date']),
            user_id=optional_int(data.get('user_id')),
        )


Transaction = Union[Sale, LoanPayment]


def transaction_from_dict(data: Dict[str, Any]) -> Transaction:
    """Rebuild a stored transaction from its type tag"""
    transaction_type = TransactionType(data.get('type', TransactionType.SALE.value))
    if transaction_type == TransactionType.LOAN_PAYMENT:
        return LoanPayment.from_dict(data)
    return Sale.from_dict(data)
