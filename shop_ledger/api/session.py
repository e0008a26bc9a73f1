"""
Login, profile and dashboard endpoints
"""

from fastapi import APIRouter, Depends

from .auth import ShopSystem, check_closed_hours, get_current_identity, get_shop_system
from .schemas import LanguageRequest, LoginRequest, ProfileUpdateRequest
from ..auth import IdentityClaim
from ..records import to_storable


router = APIRouter()


@router.post("/login", dependencies=[Depends(check_closed_hours)])
async def login(
    request: LoginRequest,
    system: ShopSystem = Depends(get_shop_system)
):
    """Exchange username and password for a signed bearer token"""
    user = system.ledger.authenticate(request.username, request.password)
    return {
        "token": system.tokens.issue(user),
        "token_type": "bearer",
        "user": user.to_public_dict(),
    }


@router.get("/user/profile")
async def get_profile(
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    return system.store.get_user(identity.id).to_public_dict()


@router.put("/user/profile", dependencies=[Depends(check_closed_hours)])
async def update_profile(
    request: ProfileUpdateRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    user = system.ledger.update_profile(identity, name=request.name, language=request.language)
    return {"message": "Profile updated", "user": user.to_public_dict()}


@router.put("/user/language")
async def set_language(
    request: LanguageRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    language = system.ledger.set_language(identity, request.language)
    return {"message": "Language updated", "language": language}


@router.get("/dashboard")
async def get_dashboard(
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    """Income totals, open loans, low stock and recent notifications"""
    return to_storable(system.analytics.dashboard())
