"""
User management endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import (
    ShopSystem, check_closed_hours, get_current_identity, get_shop_system, require_admin
)
from .schemas import ChangePasswordRequest, CreateUserRequest, UpdateUserRequest, changes
from ..auth import IdentityClaim


router = APIRouter(dependencies=[Depends(get_current_identity)])


@router.get("")
async def list_users(system: ShopSystem = Depends(get_shop_system)):
    with system.store.lock:
        return [user.to_public_dict() for user in system.store.users]


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(check_closed_hours)])
async def create_user(
    request: CreateUserRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    """Create a standard user (admin only)"""
    user = system.ledger.create_user(
        identity,
        username=request.username,
        password=request.password,
        name=request.name,
        language=request.language,
    )
    return user.to_public_dict()


@router.put("/{user_id}", dependencies=[Depends(check_closed_hours)])
async def update_user(
    user_id: int,
    request: UpdateUserRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    user = system.ledger.update_user(identity, user_id, changes(request))
    return user.to_public_dict()


@router.put("/{user_id}/password", dependencies=[Depends(check_closed_hours)])
async def change_password(
    user_id: int,
    request: ChangePasswordRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    system.ledger.change_password(
        identity, user_id, request.current_password, request.new_password
    )
    return {"message": "Password changed successfully"}


@router.delete("/{user_id}", dependencies=[Depends(check_closed_hours)])
async def delete_user(
    user_id: int,
    identity: IdentityClaim = Depends(require_admin),
    system: ShopSystem = Depends(get_shop_system)
):
    user = system.ledger.delete_user(identity, user_id)
    return {"message": f"User {user.username} deleted"}
