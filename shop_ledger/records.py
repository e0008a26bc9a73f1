"""
Stored Record Base

Serialization shared by every entity kept in the snapshot. Monetary values
are written as Decimal strings and timestamps as ISO-8601 strings.
"""

from dataclasses import asdict
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional


def to_storable(value: Any) -> Any:
    """Convert a value into JSON-safe primitives"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_storable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_storable(item) for item in value]
    return value


def parse_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """Parse a stored or submitted amount into a finite Decimal"""
    if isinstance(value, float):
        value = str(value)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid {field_name}: {value!r}")
    # Amounts must be finite: no NaN or Infinity
    if not amount.is_finite():
        raise ValueError(f"Invalid {field_name}: {value!r}")
    return amount


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC"""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


class StorageRecord:
    """Base class for all stored records (used with @dataclass subclasses)"""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return to_storable(asdict(self))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary"""
        raise NotImplementedError
