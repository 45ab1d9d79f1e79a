"""Credit packages, Razorpay orders and the webhook that tops up the ledger exactly once per order."""

from dataclasses import asdict, dataclass

import orjson

from app.core.config import get_settings
from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from app.core.security import verify_razorpay_webhook
from app.models.ledger import TransactionKind
from app.models.payment_order import PaymentOrder
from app.services.credits import CreditLedger

log = get_logger(__name__)

PAID_EVENTS = ("payment.captured", "order.paid")


@dataclass(frozen=True)
class CreditPackage:
    id: str
    name: str
    credits: int
    price: int  # minor currency units
    popular: bool = False


CREDIT_PACKAGES: dict[str, CreditPackage] = {
    p.id: p
    for p in (
        CreditPackage("starter", "Starter", 200, 900),
        CreditPackage("growth", "Growth", 500, 2400, popular=True),
        CreditPackage("pro", "Pro", 1600, 7900),
    )
}


def get_package(package_id: str) -> CreditPackage | None:
    return CREDIT_PACKAGES.get(package_id)


def list_packages() -> list[dict]:
    currency = get_settings().payment_currency
    return [{**asdict(p), "currency": currency} for p in CREDIT_PACKAGES.values()]


async def create_order(user_id: str, package_id: str) -> dict:
    """Create a Razorpay order for a package; return what the checkout widget needs."""
    import razorpay
    settings = get_settings()
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise BadRequestError("Payments not configured")
    package = get_package(package_id)
    if package is None:
        raise BadRequestError("Invalid package")
    client = razorpay.Client(auth=(settings.razorpay_key_id, settings.razorpay_key_secret))
    order = client.order.create(
        {
            "amount": package.price,
            "currency": settings.payment_currency,
            "notes": {"user_id": user_id, "package_id": package.id, "credits": str(package.credits)},
        }
    )
    await PaymentOrder(
        order_id=order["id"],
        user_id=user_id,
        package_id=package.id,
        credits=package.credits,
        amount=package.price,
        currency=settings.payment_currency,
    ).insert()
    log.info("payment_order_created", user_id=user_id, order_id=order["id"], package_id=package.id)
    return {
        "order_id": order["id"],
        "amount": order["amount"],
        "currency": order["currency"],
        "key_id": settings.razorpay_key_id,
        "package": asdict(package),
    }


async def find_order(order_id: str) -> PaymentOrder | None:
    return await PaymentOrder.find_one(PaymentOrder.order_id == order_id)


def _order_id(event: dict) -> str | None:
    payload = event.get("payload") or {}
    payment = (payload.get("payment") or {}).get("entity") or {}
    order = (payload.get("order") or {}).get("entity") or {}
    return payment.get("order_id") or order.get("id")


async def handle_webhook(ledger: CreditLedger, payload: bytes, signature: str) -> None:
    """Verify the HMAC signature and credit the buyer for paid events.

    Credits are keyed on the order id, so redelivered or overlapping events
    (payment.captured then order.paid) credit once.
    """
    settings = get_settings()
    if not settings.razorpay_webhook_secret:
        raise BadRequestError("Webhook secret not configured")
    if not verify_razorpay_webhook(payload, signature, settings.razorpay_webhook_secret):
        raise BadRequestError("Invalid webhook signature")
    try:
        event = orjson.loads(payload)
    except orjson.JSONDecodeError:
        raise BadRequestError("Invalid webhook payload")

    event_type = event.get("event")
    if event_type not in PAID_EVENTS:
        log.info("webhook_ignored", event_type=event_type)
        return
    order_id = _order_id(event)
    order = await find_order(order_id) if order_id else None
    if order is None:
        log.warning("webhook_unknown_order", event_type=event_type, order_id=order_id)
        return

    package = get_package(order.package_id)
    name = package.name if package else order.package_id
    receipt = await ledger.add_balance(
        order.user_id,
        order.credits,
        TransactionKind.PURCHASE,
        description=f"Purchased {name} package - {order.credits:,} credits",
        external_reference=order.order_id,
    )
    log.info(
        "webhook_processed",
        event_type=event_type,
        order_id=order.order_id,
        user_id=order.user_id,
        duplicate=receipt.duplicate,
    )
