"""
Administrative endpoints
"""

from fastapi import APIRouter, Depends

from .auth import ShopSystem, check_closed_hours, get_shop_system, require_admin
from .schemas import ResetPasswordRequest
from ..auth import IdentityClaim


router = APIRouter()


@router.put("/users/{user_id}/reset-password", dependencies=[Depends(check_closed_hours)])
async def reset_password(
    user_id: int,
    request: ResetPasswordRequest,
    identity: IdentityClaim = Depends(require_admin),
    system: ShopSystem = Depends(get_shop_system)
):
    """Set a new password for any user without the current one"""
    user = system.ledger.reset_password(identity, user_id, request.new_password)
    return {"message": f"Password reset for {user.username}"}
