"""
Authentication and authorization dependencies
"""

from datetime import datetime
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..analytics import AnalyticsEngine
from ..auth import IdentityClaim, TokenService
from ..config import ShopLedgerConfig, get_config
from ..errors import AuthError, ForbiddenError
from ..ledger import LedgerEngine
from ..storage import EntityStore, SnapshotStorage


# Friday 18:00 through Saturday 18:30, local time
CLOSED_FROM = (4, 18 * 60)
CLOSED_UNTIL = (5, 18 * 60 + 30)


class ShopSystem:
    """Shop ledger with all components initialized"""

    def __init__(
        self,
        config: Optional[ShopLedgerConfig] = None,
        storage: Optional[SnapshotStorage] = None,
        store: Optional[EntityStore] = None
    ):
        self.config = config or get_config()
        self.storage = storage or SnapshotStorage(
            self.config.snapshot_path,
            admin_username=self.config.bootstrap_admin_username,
            admin_password=self.config.bootstrap_admin_password,
            admin_name=self.config.bootstrap_admin_name,
            admin_language=self.config.bootstrap_admin_language,
        )
        self.store = store or self.storage.load()

        self.ledger = LedgerEngine(
            self.store, self.storage,
            password_min_length=self.config.password_min_length,
            currency_label=self.config.currency_label,
        )
        self.analytics = AnalyticsEngine(
            self.store,
            low_stock_threshold=self.config.low_stock_threshold,
            recent_notifications_limit=self.config.recent_notifications_limit,
        )
        self.tokens = TokenService(
            self.config.jwt_secret,
            algorithm=self.config.jwt_algorithm,
            expiry_hours=self.config.jwt_expiry_hours,
        )


# Global shop system instance, created on first use
shop_system: Optional[ShopSystem] = None


def get_shop_system() -> ShopSystem:
    global shop_system
    if shop_system is None:
        shop_system = ShopSystem()
    return shop_system


security = HTTPBearer(auto_error=False)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    system: ShopSystem = Depends(get_shop_system)
) -> IdentityClaim:
    """Verify the bearer token and return the acting identity"""
    if not credentials:
        raise AuthError("No token")
    claim = system.tokens.verify(credentials.credentials)

    # Role and name follow the current user record, not the token copy
    user = system.store.find_user(claim.id)
    if user is None:
        raise AuthError("Invalid token")
    return IdentityClaim.for_user(user)


def require_admin(identity: IdentityClaim = Depends(get_current_identity)) -> IdentityClaim:
    if not identity.is_admin:
        raise ForbiddenError("Admin role required")
    return identity


def is_closed_hours(moment: datetime) -> bool:
    """True between Friday 18:00 and Saturday 18:30 (inclusive)"""
    minutes = moment.hour * 60 + moment.minute
    day = moment.weekday()
    if day == CLOSED_FROM[0]:
        return minutes >= CLOSED_FROM[1]
    if day == CLOSED_UNTIL[0]:
        return minutes <= CLOSED_UNTIL[1]
    return False


def check_closed_hours(system: ShopSystem = Depends(get_shop_system)) -> None:
    if system.config.enforce_closed_hours and is_closed_hours(datetime.now()):
        raise ForbiddenError(
            "System unavailable from Friday 18:00 to Saturday 18:30"
        )
