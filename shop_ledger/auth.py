"""
Identity Claims

Login issues a signed JWT carrying the claim ``{id, role, name}``. Every
request verifies signature and expiry before the claim is trusted as the
acting user for ledger operations.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, Optional
import jwt

from .errors import AuthError
from .users import Role, User


@dataclass(frozen=True)
class IdentityClaim:
    """Verified acting identity"""
    id: int
    role: Role
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def for_user(cls, user: User) -> 'IdentityClaim':
        return cls(id=user.id, role=user.role, name=user.name)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "role": self.role.value, "name": self.name}


class TokenService:
    """Issues and verifies HMAC-signed identity tokens"""

    def __init__(self, secret: str, algorithm: str = "HS256", expiry_hours: int = 24):
        self.secret = secret
        self.algorithm = algorithm
        self.expiry_hours = expiry_hours

    def issue(self, user: User, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "role": user.role.value,
            "name": user.name,
            "iat": now,
            "exp": now + timedelta(hours=self.expiry_hours),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> IdentityClaim:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthError("Token expired")
        except jwt.InvalidTokenError:
            raise AuthError("Invalid token")

        try:
            return IdentityClaim(
                id=int(payload["sub"]),
                role=Role(payload["role"]),
                name=payload.get("name", ""),
            )
        except (KeyError, ValueError, TypeError):
            raise AuthError("Invalid token")
