import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from app.config import settings
from app.db import AsyncSessionLocal
from app.models import Account
from app.services import stripe_service
from app.services.timezone import ensure_utc
from conftest import auth, run
from test_accounts import login, register


async def _account() -> Account:
    async with AsyncSessionLocal() as session:
        return await session.scalar(select(Account).where(Account.email == "parent@example.com"))


async def _set_subscription(subscription_id: str) -> None:
    async with AsyncSessionLocal() as session:
        account = await session.scalar(select(Account).where(Account.email == "parent@example.com"))
        account.plan_type = "sub"
        account.subscription_id = subscription_id
        account.stripe_customer_id = "cus_123"
        await session.commit()


@pytest.fixture
def saas(monkeypatch):
    monkeypatch.setattr(settings, "deployment_mode", "saas")
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings, "stripe_webhook_secret", "whsec_123")


@pytest.fixture
def owner_headers(client, saas) -> dict:
    register(client)
    headers = auth(login(client))
    client.post("/api/setup/start", json={"name": "Lee Family", "slug": "lee-family"}, headers=headers)
    return headers


def test_payments_disabled_when_self_hosted(client):
    register(client)
    headers = auth(login(client))
    res = client.post(
        "/api/accounts/payments/create-checkout-session",
        json={"priceId": "price_1", "planType": "sub"},
        headers=headers,
    )
    assert res.status_code == 404


def test_payments_require_account_owner(client, saas, family_headers):
    res = client.post(
        "/api/accounts/payments/create-checkout-session",
        json={"priceId": "price_1", "planType": "sub"},
        headers=family_headers,
    )
    assert res.status_code == 403


def test_create_checkout_session(client, owner_headers, monkeypatch):
    captured = {}

    async def fake_customer(email, name, account_id):
        return {"id": "cus_123"}

    async def fake_session(**params):
        captured.update(params)
        return {"id": "cs_123", "url": "https://checkout.stripe.com/cs_123"}

    monkeypatch.setattr(stripe_service, "create_customer", fake_customer)
    monkeypatch.setattr(stripe_service, "create_checkout_session", fake_session)

    res = client.post(
        "/api/accounts/payments/create-checkout-session",
        json={"priceId": "price_1", "planType": "full"},
        headers=owner_headers,
    )
    assert res.status_code == 200
    assert res.json()["data"] == {"sessionId": "cs_123", "url": "https://checkout.stripe.com/cs_123"}
    assert captured["mode"] == "payment"
    assert captured["metadata"]["planType"] == "full"
    assert run(_account()).stripe_customer_id == "cus_123"


def test_checkout_session_validation(client, owner_headers):
    url = "/api/accounts/payments/create-checkout-session"
    assert client.post(url, json={"planType": "sub"}, headers=owner_headers).status_code == 400
    assert client.post(url, json={"priceId": "p", "planType": "monthly"}, headers=owner_headers).status_code == 400


def test_verify_lifetime_session(client, owner_headers, monkeypatch):
    account_id = run(_account()).id

    async def fake_retrieve(session_id):
        return {
            "id": session_id,
            "payment_status": "paid",
            "customer": "cus_999",
            "metadata": {"accountId": account_id, "planType": "full"},
        }

    monkeypatch.setattr(stripe_service, "retrieve_checkout_session", fake_retrieve)
    res = client.post("/api/accounts/payments/verify-session", json={"sessionId": "cs_1"}, headers=owner_headers)
    assert res.status_code == 200
    assert res.json()["data"]["planType"] == "full"

    account = run(_account())
    assert account.plan_type == "full"
    assert account.trial_ends is None
    assert account.stripe_customer_id == "cus_999"


def test_verify_session_of_other_account(client, owner_headers, monkeypatch):
    async def fake_retrieve(session_id):
        return {"id": session_id, "payment_status": "paid", "metadata": {"accountId": "other", "planType": "full"}}

    monkeypatch.setattr(stripe_service, "retrieve_checkout_session", fake_retrieve)
    res = client.post("/api/accounts/payments/verify-session", json={"sessionId": "cs_1"}, headers=owner_headers)
    assert res.status_code == 403


def test_cancel_and_reactivate_subscription(client, owner_headers, monkeypatch):
    run(_set_subscription("sub_123"))

    async def fake_modify(subscription_id, **params):
        return {"id": subscription_id, "cancel_at_period_end": params["cancel_at_period_end"], "current_period_end": 1893456000}

    monkeypatch.setattr(stripe_service, "modify_subscription", fake_modify)

    res = client.post("/api/accounts/payments/cancel-subscription", headers=owner_headers)
    assert res.status_code == 200
    assert res.json()["data"]["cancelAtPeriodEnd"] is True

    res = client.post("/api/accounts/payments/reactivate-subscription", headers=owner_headers)
    assert res.json()["data"]["cancelAtPeriodEnd"] is False


def test_cancel_without_subscription(client, owner_headers):
    res = client.post("/api/accounts/payments/cancel-subscription", headers=owner_headers)
    assert res.status_code == 400


def test_subscription_status_from_stored_plan(client, owner_headers):
    res = client.get("/api/accounts/payments/subscription-status", headers=owner_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["isActive"] is False
    assert data["trialEnds"] is not None


def test_payment_history_without_customer(client, owner_headers):
    res = client.get("/api/accounts/payments/payment-history", headers=owner_headers)
    assert res.json()["data"] == {"transactions": [], "hasMore": False}


def test_payment_history(client, owner_headers, monkeypatch):
    run(_set_subscription("sub_123"))

    async def fake_list(customer_id, limit, starting_after=None):
        return {
            "has_more": False,
            "data": [{
                "id": "pi_1",
                "created": 1735689600,
                "amount": 4999,
                "currency": "usd",
                "status": "succeeded",
                "description": None,
                "latest_charge": {"receipt_url": "https://pay.stripe.com/receipts/1"},
            }],
        }

    monkeypatch.setattr(stripe_service, "list_payment_intents", fake_list)
    res = client.get("/api/accounts/payments/payment-history", headers=owner_headers)
    item = res.json()["data"]["transactions"][0]
    assert item["amount"] == 49.99
    assert item["currency"] == "USD"
    assert item["description"] == "Baby Control payment"
    assert item["receiptUrl"] == "https://pay.stripe.com/receipts/1"


# -------------------- Webhook --------------------

def test_webhook_get_not_allowed(client):
    assert client.get("/api/accounts/payments/webhook").status_code == 405


def test_webhook_requires_signature(client, saas):
    res = client.post("/api/accounts/payments/webhook", content=b"{}")
    assert res.status_code == 400


def test_webhook_rejects_bad_signature(client, saas):
    res = client.post(
        "/api/accounts/payments/webhook",
        content=b'{"type": "invoice.payment_failed"}',
        headers={"stripe-signature": "t=1,v1=bogus"},
    )
    assert res.status_code == 400


def test_webhook_lifetime_checkout(client, owner_headers, monkeypatch):
    account_id = run(_account()).id

    async def fake_customer(customer_id):
        return {"id": customer_id, "metadata": {"accountId": account_id}}

    monkeypatch.setattr(stripe_service, "construct_event", lambda payload, signature: None)
    monkeypatch.setattr(stripe_service, "retrieve_customer", fake_customer)

    event = {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_1",
            "mode": "payment",
            "customer": "cus_1",
            "metadata": {"accountId": account_id, "planType": "full"},
        }},
    }
    res = client.post(
        "/api/accounts/payments/webhook",
        content=json.dumps(event).encode(),
        headers={"stripe-signature": "t=1,v1=signed"},
    )
    assert res.status_code == 200
    assert res.json() == {"received": True}
    assert run(_account()).plan_type == "full"


def test_webhook_subscription_deleted(client, owner_headers, monkeypatch):
    run(_set_subscription("sub_123"))
    account_id = run(_account()).id
    monkeypatch.setattr(stripe_service, "construct_event", lambda payload, signature: None)

    event = {
        "id": "evt_2",
        "type": "customer.subscription.deleted",
        "data": {"object": {"id": "sub_123", "metadata": {"accountId": account_id}}},
    }
    res = client.post(
        "/api/accounts/payments/webhook",
        content=json.dumps(event).encode(),
        headers={"stripe-signature": "t=1,v1=signed"},
    )
    assert res.status_code == 200
    assert run(_account()).subscription_id is None


# -------------------- Webhook: suscripciones --------------------

PERIOD_END = 1893456000  # 2030-01-01T00:00:00Z


def _post_event(client, event: dict):
    return client.post(
        "/api/accounts/payments/webhook",
        content=json.dumps(event).encode(),
        headers={"stripe-signature": "t=1,v1=signed"},
    )


def _plan_expires(account: Account) -> datetime:
    return ensure_utc(account.plan_expires)


def test_webhook_subscription_checkout_repairs_metadata(client, owner_headers, monkeypatch):
    account_id = run(_account()).id
    calls = []

    async def fake_subscription(subscription_id):
        return {"id": subscription_id, "metadata": {}, "items": {"data": [{"current_period_end": PERIOD_END}]}}

    async def fake_modify(subscription_id, **params):
        calls.append(("subscription", subscription_id, params["metadata"]))

    async def fake_customer(customer_id):
        return {"id": customer_id, "metadata": {"source": "web"}}

    async def fake_update_customer(customer_id, metadata):
        calls.append(("customer", customer_id, metadata))

    monkeypatch.setattr(stripe_service, "construct_event", lambda payload, signature: None)
    monkeypatch.setattr(stripe_service, "retrieve_subscription", fake_subscription)
    monkeypatch.setattr(stripe_service, "modify_subscription", fake_modify)
    monkeypatch.setattr(stripe_service, "retrieve_customer", fake_customer)
    monkeypatch.setattr(stripe_service, "update_customer_metadata", fake_update_customer)

    res = _post_event(client, {
        "id": "evt_3",
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_3",
            "mode": "subscription",
            "customer": "cus_9",
            "subscription": "sub_9",
            "metadata": {"accountId": account_id, "planType": "monthly"},
        }},
    })
    assert res.json() == {"received": True}
    assert calls == [
        ("subscription", "sub_9", {"accountId": account_id}),
        ("customer", "cus_9", {"source": "web", "accountId": account_id}),
    ]

    account = run(_account())
    assert account.plan_type == "sub"
    assert account.subscription_id == "sub_9"
    assert account.stripe_customer_id == "cus_9"
    assert account.trial_ends is None
    assert _plan_expires(account) == datetime.fromtimestamp(PERIOD_END, tz=timezone.utc)


def test_webhook_checkout_finds_account_through_customer(client, owner_headers, monkeypatch):
    account_id = run(_account()).id

    async def fake_subscription(subscription_id):
        return {"id": subscription_id, "metadata": {"accountId": account_id}, "current_period_end": PERIOD_END}

    async def fake_customer(customer_id):
        return {"id": customer_id, "metadata": {"accountId": account_id}}

    monkeypatch.setattr(stripe_service, "construct_event", lambda payload, signature: None)
    monkeypatch.setattr(stripe_service, "retrieve_subscription", fake_subscription)
    monkeypatch.setattr(stripe_service, "retrieve_customer", fake_customer)

    _post_event(client, {
        "id": "evt_4",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_4", "mode": "subscription", "customer": "cus_9", "subscription": "sub_9"}},
    })
    assert run(_account()).subscription_id == "sub_9"


@pytest.mark.parametrize("event_type", ["customer.subscription.created", "customer.subscription.updated"])
def test_webhook_subscription_change_by_customer_id(client, owner_headers, monkeypatch, event_type):
    run(_set_subscription("sub_123"))
    monkeypatch.setattr(stripe_service, "construct_event", lambda payload, signature: None)

    res = _post_event(client, {
        "id": "evt_5",
        "type": event_type,
        "data": {"object": {
            "id": "sub_456",
            "customer": "cus_123",
            "metadata": {},
            "current_period_end": PERIOD_END,
        }},
    })
    assert res.status_code == 200

    account = run(_account())
    assert account.subscription_id == "sub_456"
    assert account.plan_type == "sub"
    assert _plan_expires(account) == datetime.fromtimestamp(PERIOD_END, tz=timezone.utc)


@pytest.mark.parametrize("invoice", [
    {"id": "in_1", "parent": {"subscription_details": {"subscription": "sub_123"}}},
    {"id": "in_2", "subscription": "sub_123"},
])
def test_webhook_invoice_paid_extends_plan(client, owner_headers, monkeypatch, invoice):
    run(_set_subscription("sub_123"))
    requested = []

    async def fake_subscription(subscription_id):
        requested.append(subscription_id)
        return {
            "id": subscription_id,
            "customer": "cus_123",
            "metadata": {},
            "items": {"data": [{"current_period_end": PERIOD_END}]},
        }

    monkeypatch.setattr(stripe_service, "construct_event", lambda payload, signature: None)
    monkeypatch.setattr(stripe_service, "retrieve_subscription", fake_subscription)

    res = _post_event(client, {"id": "evt_6", "type": "invoice.payment_succeeded", "data": {"object": invoice}})
    assert res.status_code == 200
    assert requested == ["sub_123"]
    assert _plan_expires(run(_account())) == datetime.fromtimestamp(PERIOD_END, tz=timezone.utc)


def test_webhook_handler_error_still_acknowledged(client, owner_headers, monkeypatch):
    run(_set_subscription("sub_123"))

    async def broken_subscription(subscription_id):
        raise RuntimeError("stripe is down")

    monkeypatch.setattr(stripe_service, "construct_event", lambda payload, signature: None)
    monkeypatch.setattr(stripe_service, "retrieve_subscription", broken_subscription)

    res = _post_event(client, {
        "id": "evt_7",
        "type": "invoice.payment_succeeded",
        "data": {"object": {"id": "in_3", "subscription": "sub_123"}},
    })
    assert res.status_code == 200
    assert res.json() == {"received": True}
    assert run(_account()).plan_expires is None
