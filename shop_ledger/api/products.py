"""
Product and stock endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .auth import ShopSystem, check_closed_hours, get_current_identity, get_shop_system
from .schemas import CreateProductRequest, StockRequest, UpdateProductRequest, changes
from ..auth import IdentityClaim


router = APIRouter(dependencies=[Depends(get_current_identity)])


@router.get("")
async def list_products(system: ShopSystem = Depends(get_shop_system)):
    with system.store.lock:
        return [product.to_dict() for product in system.store.products]


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(check_closed_hours)])
async def create_product(
    request: CreateProductRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    product = system.ledger.create_product(identity, changes(request))
    return product.to_dict()


# Declared before /{product_id} so "low-stock" is not parsed as an id
@router.get("/low-stock")
async def list_low_stock(
    threshold: Optional[int] = Query(None, ge=0),
    system: ShopSystem = Depends(get_shop_system)
):
    return [product.to_dict() for product in system.analytics.low_stock_products(threshold)]


@router.get("/{product_id}")
async def get_product(product_id: int, system: ShopSystem = Depends(get_shop_system)):
    with system.store.lock:
        return system.store.get_product(product_id).to_dict()


@router.put("/{product_id}", dependencies=[Depends(check_closed_hours)])
async def update_product(
    product_id: int,
    request: UpdateProductRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    product = system.ledger.update_product(identity, product_id, changes(request))
    return product.to_dict()


@router.put("/{product_id}/stock", dependencies=[Depends(check_closed_hours)])
async def adjust_stock(
    product_id: int,
    request: StockRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    """Overwrite the stock level"""
    adjustment = system.ledger.adjust_stock(identity, product_id, request.stock)
    return {
        "product": adjustment.product.to_dict(),
        "old_stock": adjustment.old_stock,
        "new_stock": adjustment.new_stock,
    }


@router.delete("/{product_id}", dependencies=[Depends(check_closed_hours)])
async def delete_product(
    product_id: int,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    product = system.ledger.delete_product(identity, product_id)
    return {"message": f"Product {product.name} deleted"}
