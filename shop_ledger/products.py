"""
Product Records

Stock is optional: a product without a stock value is not inventory-tracked,
which is different from a tracked product with zero units left.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from .records import StorageRecord, optional_int, parse_decimal, to_storable


PRODUCT_FIELDS = ("id", "name", "price", "stock")


@dataclass
class Product(StorageRecord):
    """Catalogue product"""
    id: int
    name: str
    price: Decimal = Decimal('0')
    stock: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_tracked(self) -> bool:
        return self.stock is not None

    def is_low_stock(self, threshold: int) -> bool:
        return self.is_tracked and self.stock <= threshold

    def to_dict(self) -> Dict[str, Any]:
        result = to_storable(dict(self.extra))
        result.update({
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
        })
        if self.is_tracked:
            result["stock"] = self.stock
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        return cls(
            id=int(data['id']),
            name=data['name'],
            price=parse_decimal(data.get('price', '0'), 'price'),
            stock=optional_int(data.get('stock')),
            extra={k: v for k, v in data.items() if k not in PRODUCT_FIELDS},
        )
