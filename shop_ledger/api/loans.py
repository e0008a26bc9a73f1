"""
Loan repayment endpoints
"""

from fastapi import APIRouter, Depends

from .auth import ShopSystem, check_closed_hours, get_current_identity, get_shop_system
from .schemas import LoanPaymentRequest
from ..auth import IdentityClaim


router = APIRouter()


@router.post("/pay", dependencies=[Depends(check_closed_hours)])
async def pay_loan(
    request: LoanPaymentRequest,
    identity: IdentityClaim = Depends(get_current_identity),
    system: ShopSystem = Depends(get_shop_system)
):
    result = system.ledger.record_loan_payment(identity, request.client_id, request.amount)
    return {
        "message": "Payment recorded",
        "client": result.client.to_dict(),
        "payment": str(result.payment),
        "remaining_loan": str(result.remaining_loan),
        "transaction": result.transaction.to_dict(),
    }
