"""
User Accounts

Shop operators with a role and a language preference. Passwords are kept
as salted scrypt hashes and never serialized outward.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict
import hashlib
import hmac
import secrets

from .records import StorageRecord


class Role(Enum):
    """Operator roles"""
    ADMIN = "admin"
    STANDARD = "standard-user"


def generate_salt() -> str:
    """Generate random salt for password hashing"""
    return secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    """Hash password with salt using scrypt"""
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()


@dataclass
class User(StorageRecord):
    """Operator account"""
    id: int
    username: str
    name: str
    role: Role = Role.STANDARD
    language: str = "en"
    password_hash: str = ""
    password_salt: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def set_password(self, password: str) -> None:
        """Replace the stored hash with a fresh salt"""
        self.password_salt = generate_salt()
        self.password_hash = hash_password(password, self.password_salt)

    def verify_password(self, password: str) -> bool:
        if not self.password_hash or not self.password_salt:
            return False
        expected = hash_password(password, self.password_salt)
        return hmac.compare_digest(expected, self.password_hash)

    def to_public_dict(self) -> Dict[str, Any]:
        """Outward representation, without credentials"""
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role.value,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=int(data['id']),
            username=data['username'],
            name=data.get('name') or data['username'],
            role=Role(data.get('role', Role.STANDARD.value)),
            language=data.get('language', 'en'),
            password_hash=data.get('password_hash', ''),
            password_salt=data.get('password_salt', ''),
        )
