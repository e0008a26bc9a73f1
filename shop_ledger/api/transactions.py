"""
Sale endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import ShopSystem, check_closed_hours, get_current_identity, get_shop_system
from .schemas import SaleRequest
from ..auth import IdentityClaim


router = APIRouter(dependencies=[Depends(get_current_identity)])


@router.get("")
async def list_transactions(system: ShopSystem = Depends(get_shop_system)):
    with system.store.lock:
        return [transaction.to_dict() for transaction in system.store.transactions]


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(check_closed_hours)])
async def record_sale(
    request: SaleRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    """Record a sale; any unpaid remainder becomes loan on the client"""
    sale = system.ledger.record_sale(
        identity,
        request.client_id,
        [item.model_dump() for item in request.items],
        request.paid,
    )
    return sale.to_dict()
