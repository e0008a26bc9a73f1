"""
Notification endpoints
"""

from fastapi import APIRouter, Depends

from .auth import ShopSystem, get_current_identity, get_shop_system
from ..auth import IdentityClaim


router = APIRouter(dependencies=[Depends(get_current_identity)])


@router.get("")
async def list_notifications(system: ShopSystem = Depends(get_shop_system)):
    """All notifications, newest first"""
    with system.store.lock:
        return [n.to_dict() for n in reversed(system.store.notifications.all())]


@router.delete("")
async def clear_notifications(
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    removed = system.ledger.clear_notifications(identity)
    return {"message": "All notifications cleared", "removed": removed}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    system.ledger.delete_notification(identity, notification_id)
    return {"message": "Notification deleted"}
