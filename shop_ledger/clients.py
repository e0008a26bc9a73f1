"""
Client Records

A client carries a running loan balance that only moves through sales and
loan payments. Free-form fields (insurer, notes, ...) are kept verbatim.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict

from .records import StorageRecord, parse_decimal, to_storable


CLIENT_FIELDS = ("id", "name", "phone", "loan")


@dataclass
class Client(StorageRecord):
    """Shop client"""
    id: int
    name: str
    phone: str = ""
    loan: Decimal = Decimal('0')
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_loan(self) -> bool:
        return self.loan > 0

    def to_dict(self) -> Dict[str, Any]:
        result = to_storable(dict(self.extra))
        result.update({
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "loan": str(self.loan),
        })
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Client':
        return cls(
            id=int(data['id']),
            name=data['name'],
            phone=data.get('phone') or "",
            loan=parse_decimal(data.get('loan', '0'), 'loan'),
            extra={k: v for k, v in data.items() if k not in CLIENT_FIELDS},
        )
