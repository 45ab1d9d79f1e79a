"""Razorpay webhook: signature check and exactly-once crediting per order."""

from decimal import Decimal
from types import SimpleNamespace

import orjson
import pytest

from app.core.config import get_settings
from app.core.exceptions import BadRequestError
from app.core.security import sign_webhook_payload
from app.models.ledger import TransactionKind
from app.services import payments as payments_service

USER = "user-42"


def signed(event: dict) -> tuple[bytes, str]:
    payload = orjson.dumps(event)
    return payload, sign_webhook_payload(payload, get_settings().razorpay_webhook_secret)


def captured(order_id: str = "order_1") -> dict:
    return {
        "event": "payment.captured",
        "payload": {"payment": {"entity": {"id": "pay_1", "order_id": order_id, "amount": 2400}}},
    }


@pytest.fixture
def orders(monkeypatch):
    known = {
        "order_1": SimpleNamespace(order_id="order_1", user_id=USER, package_id="growth", credits=500),
    }

    async def find_order(order_id):
        return known.get(order_id)

    monkeypatch.setattr(payments_service, "find_order", find_order)
    return known


def test_packages():
    packages = {p["id"]: p for p in payments_service.list_packages()}
    assert packages["starter"]["credits"] == 200 and packages["starter"]["price"] == 900
    assert packages["growth"]["popular"] is True
    assert packages["pro"]["credits"] == 1600
    assert packages["pro"]["currency"] == "USD"


async def test_webhook_credits_purchase(ledger, orders):
    payload, signature = signed(captured())
    await payments_service.handle_webhook(ledger, payload, signature)

    assert await ledger.get_balance(USER) == Decimal("500")
    tx = (await ledger.list_transactions(USER))[0]
    assert tx.kind == TransactionKind.PURCHASE
    assert tx.external_reference == "order_1"
    assert tx.description == "Purchased Growth package - 500 credits"


async def test_webhook_redelivery_credits_once(ledger, orders):
    payload, signature = signed(captured())
    await payments_service.handle_webhook(ledger, payload, signature)
    await payments_service.handle_webhook(ledger, payload, signature)
    order_paid = {"event": "order.paid", "payload": {"order": {"entity": {"id": "order_1"}}}}
    await payments_service.handle_webhook(ledger, *signed(order_paid))

    assert await ledger.get_balance(USER) == Decimal("500")
    assert len(await ledger.list_transactions(USER)) == 1


async def test_webhook_rejects_bad_signature(ledger, orders):
    payload, _ = signed(captured())
    with pytest.raises(BadRequestError):
        await payments_service.handle_webhook(ledger, payload, "not-a-signature")
    assert await ledger.get_balance(USER) == Decimal("0")


async def test_webhook_ignores_other_events(ledger, orders):
    await payments_service.handle_webhook(ledger, *signed({"event": "payment.failed", "payload": {}}))
    assert await ledger.get_balance(USER) == Decimal("0")


async def test_webhook_unknown_order_is_noop(ledger, orders):
    await payments_service.handle_webhook(ledger, *signed(captured("order_missing")))
    assert await ledger.list_transactions(USER) == []


async def test_webhook_endpoint(client, override, ledger, orders):
    payload, signature = signed(captured())
    r = await client.post(
        "/v1/payments/webhook",
        content=payload,
        headers={"X-Razorpay-Signature": signature, "Content-Type": "application/json"},
    )
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert await ledger.get_balance(USER) == Decimal("500")

    r = await client.post("/v1/payments/webhook", content=payload, headers={"X-Razorpay-Signature": "bad"})
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Invalid webhook signature"


async def test_create_order_requires_configuration():
    with pytest.raises(BadRequestError):
        await payments_service.create_order(USER, "starter")


@pytest.mark.parametrize(
    "event",
    [
        {"event": "refund.created", "payload": {}},
        captured("order_missing"),
    ],
)
async def test_webhook_endpoint_acknowledges_noop_events(client, override, ledger, orders, event):
    payload, signature = signed(event)
    r = await client.post(
        "/v1/payments/webhook",
        content=payload,
        headers={"X-Razorpay-Signature": signature, "Content-Type": "application/json"},
    )
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert await ledger.list_transactions(USER) == []
