"""
Client management endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import ShopSystem, check_closed_hours, get_current_identity, get_shop_system
from .schemas import CreateClientRequest, UpdateClientRequest, changes
from ..auth import IdentityClaim
from ..records import to_storable


router = APIRouter(dependencies=[Depends(get_current_identity)])


@router.get("")
async def list_clients(system: ShopSystem = Depends(get_shop_system)):
    with system.store.lock:
        return [client.to_dict() for client in system.store.clients]


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(check_closed_hours)])
async def create_client(
    request: CreateClientRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    client = system.ledger.create_client(identity, changes(request))
    return client.to_dict()


@router.get("/search/{query}")
async def search_clients(query: str, system: ShopSystem = Depends(get_shop_system)):
    """Match on name (case-insensitive) or phone substring"""
    return [client.to_dict() for client in system.analytics.search_clients(query)]


@router.get("/{client_id}")
async def get_client(client_id: int, system: ShopSystem = Depends(get_shop_system)):
    with system.store.lock:
        return system.store.get_client(client_id).to_dict()


@router.get("/{client_id}/loans")
async def get_loan_history(client_id: int, system: ShopSystem = Depends(get_shop_system)):
    """Loan-creating sales and repayments for a client"""
    system.store.get_client(client_id)
    return to_storable(system.analytics.client_loan_history(client_id))


@router.get("/{client_id}/purchases")
async def get_purchase_history(client_id: int, system: ShopSystem = Depends(get_shop_system)):
    system.store.get_client(client_id)
    return to_storable(system.analytics.client_purchase_history(client_id))


@router.put("/{client_id}", dependencies=[Depends(check_closed_hours)])
async def update_client(
    client_id: int,
    request: UpdateClientRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    client = system.ledger.update_client(identity, client_id, changes(request))
    return client.to_dict()


@router.delete("/{client_id}", dependencies=[Depends(check_closed_hours)])
async def delete_client(
    client_id: int,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    client = system.ledger.delete_client(identity, client_id)
    return {"message": f"Client {client.name} deleted"}
