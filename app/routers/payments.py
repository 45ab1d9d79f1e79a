from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel

from app.deps import get_current_user, get_ledger
from app.models.user import User
from app.services import payments as payments_service
from app.services.credits import CreditLedger

router = APIRouter()


class CreateOrderRequest(BaseModel):
    package_id: str  # starter | growth | pro


@router.get("/packages")
async def packages():
    return {"packages": payments_service.list_packages()}


@router.post("/orders")
async def create_order(
    body: CreateOrderRequest,
    user: User = Depends(get_current_user),
):
    """Create Razorpay order for a credit package; frontend opens checkout with order_id."""
    return await payments_service.create_order(str(user.id), body.package_id)


@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str = Header(..., alias="X-Razorpay-Signature"),
    ledger: CreditLedger = Depends(get_ledger),
):
    """Razorpay webhook: payment.captured / order.paid -> credit the package (idempotent per order)."""
    body = await request.body()
    await payments_service.handle_webhook(ledger, body, x_razorpay_signature)
    return {"status": "ok"}
