from fastapi import APIRouter, Depends, Query

from app.deps import get_current_user, get_ledger
from app.models.ledger import CreditTransaction
from app.models.user import User
from app.services import credits as credits_service
from app.services.credits import CreditLedger

router = APIRouter()


def transaction_out(tx: CreditTransaction) -> dict:
    return {
        "id": tx.id,
        "amount": float(tx.amount),
        "kind": tx.kind.value,
        "balance_after": float(tx.balance_after),
        "description": tx.description,
        "external_reference": tx.external_reference,
        "created_at": tx.created_at.isoformat(),
    }


@router.get("/balance")
async def credits_balance(
    user: User = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
):
    """Return current credit balance."""
    balance = await ledger.get_balance(str(user.id))
    return {"balance": float(balance)}


@router.get("/transactions")
async def credits_transactions(
    user: User = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """Return ledger transactions for current user (newest first)."""
    items = await ledger.list_transactions(str(user.id), limit, offset)
    return {"transactions": [transaction_out(tx) for tx in items], "limit": limit, "offset": offset}


@router.get("/pricing")
async def credits_pricing():
    return credits_service.get_pricing()


@router.post("/welcome-bonus")
async def credits_welcome_bonus(
    user: User = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
):
    """Grant the one-time welcome bonus; repeated calls report granted=false."""
    receipt = await credits_service.grant_welcome_bonus(ledger, str(user.id))
    return {"granted": not receipt.duplicate, "balance": float(receipt.balance)}
