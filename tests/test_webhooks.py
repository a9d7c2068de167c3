import base64
import hashlib
import hmac
import json
from datetime import timedelta

import pytest

from ventfreely.core.config import settings
from ventfreely.core.utils import as_utc, utcnow
from ventfreely.db.models.profile import Profile
from ventfreely.db.models.subscription import Subscription, WebhookEvent
from ventfreely.services.webhooks import note_attribute, resolve_event_id, verify_shopify_hmac


def signed(payload, topic, webhook_id="wh-1", secret=None):
    body = json.dumps(payload).encode()
    digest = hmac.new((secret or settings.SHOPIFY_WEBHOOK_SECRET).encode(), body, hashlib.sha256).digest()
    headers = {
        "X-Shopify-Hmac-Sha256": base64.b64encode(digest).decode(),
        "X-Shopify-Topic": topic,
        "Content-Type": "application/json",
    }
    if webhook_id:
        headers["X-Shopify-Webhook-Id"] = webhook_id
    return body, headers


def test_verify_shopify_hmac():
    body = b'{"id": 1}'
    good = base64.b64encode(hmac.new(b"s3cret", body, hashlib.sha256).digest()).decode()

    assert verify_shopify_hmac(body, good, "s3cret") is True
    assert verify_shopify_hmac(body, good, "other") is False
    assert verify_shopify_hmac(body, None, "s3cret") is False
    assert verify_shopify_hmac(body, good, None) is False


def test_resolve_event_id_fallbacks():
    assert resolve_event_id("orders/paid", "abc", "evt", {"id": 5}) == "abc"
    assert resolve_event_id("orders/paid", None, "evt", {"id": 5}) == "orders/paid:evt"
    assert resolve_event_id("orders/paid", None, None, {"id": 5}) == "orders/paid:5"


@pytest.mark.asyncio
async def test_rejects_bad_signature(client):
    body, headers = signed({"id": 1}, "orders/paid", secret="wrong")
    response = await client.post("/api/shopify/webhooks", content=body, headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_invalid_json(client):
    body = b"not json"
    digest = hmac.new(settings.SHOPIFY_WEBHOOK_SECRET.encode(), body, hashlib.sha256).digest()
    response = await client.post(
        "/api/shopify/webhooks",
        content=body,
        headers={"X-Shopify-Hmac-Sha256": base64.b64encode(digest).decode(), "X-Shopify-Topic": "orders/paid"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_order_paid_activates_premium(client, db):
    db.add(Profile(user_id="user-1", email="ana@example.com"))
    db.add(Subscription(user_id="user-1", status="trial", trial_ends_at=utcnow() - timedelta(days=1)))
    db.commit()

    body, headers = signed({"id": 1001, "email": "ana@example.com"}, "orders/paid")
    response = await client.post("/api/shopify/webhooks", content=body, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"ok": True, "orderId": 1001}

    db.expire_all()
    row = db.query(Subscription).filter(Subscription.user_id == "user-1").one()
    assert row.status == "active"
    expected_end = utcnow() + timedelta(days=settings.PREMIUM_DAYS_PER_PAYMENT)
    assert abs(as_utc(row.current_period_end) - expected_end) < timedelta(minutes=1)


@pytest.mark.asyncio
async def test_duplicate_delivery_is_ignored(client, db):
    db.add(Profile(user_id="user-1", email="ana@example.com"))
    db.commit()

    body, headers = signed({"id": 1001, "email": "ana@example.com"}, "orders/paid")
    first = await client.post("/api/shopify/webhooks", content=body, headers=headers)
    second = await client.post("/api/shopify/webhooks", content=body, headers=headers)

    assert first.json()["ok"] is True
    assert second.json() == {"ok": True, "duplicate": True}
    assert db.query(WebhookEvent).count() == 1
    assert db.query(Subscription).count() == 1


@pytest.mark.asyncio
async def test_order_for_unknown_email(client, db):
    body, headers = signed({"id": 7, "customer": {"email": "nobody@example.com"}}, "orders/paid")
    response = await client.post("/api/shopify/webhooks", content=body, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"ok": True, "userNotFound": True}
    assert db.query(Subscription).count() == 0


@pytest.mark.asyncio
async def test_contract_cancel_marks_canceled(client, db):
    db.add(Subscription(user_id="user-1", status="active", shopify_subscription_id="555", current_period_end=None))
    db.commit()

    body, headers = signed(
        {"id": 555, "status": "ACTIVE", "next_billing_date": "2030-01-01T00:00:00Z"},
        "subscription_contracts/cancel",
    )
    response = await client.post("/api/shopify/webhooks", content=body, headers=headers)

    assert response.status_code == 200
    db.expire_all()
    row = db.query(Subscription).one()
    assert row.status == "canceled"
    assert as_utc(row.current_period_end).year == 2030


@pytest.mark.asyncio
async def test_contract_update_without_matching_row(client, db):
    body, headers = signed({"id": 999, "status": "active"}, "subscription_contracts/update")
    response = await client.post("/api/shopify/webhooks", content=body, headers=headers)

    assert response.json() == {"ok": True}
    assert db.query(Subscription).count() == 0


@pytest.mark.asyncio
async def test_unhandled_topic_is_acknowledged(client):
    body, headers = signed({"id": 1}, "products/create", webhook_id=None)
    response = await client.post("/api/shopify/webhooks", content=body, headers=headers)
    assert response.json() == {"ok": True, "ignored": "products/create"}


@pytest.mark.asyncio
async def test_order_paid_finds_user_who_only_checked_in(client, db, auth_headers):
    submit = await client.post(
        "/api/daily/submit",
        json={"positiveText": "a quiet walk", "emotion": "Calm", "energy": "Okay"},
        headers=auth_headers("user-9", "Pay@Example.com"),
    )
    assert submit.status_code == 200

    body, headers = signed({"id": 2002, "email": "pay@example.com"}, "orders/paid")
    response = await client.post("/api/shopify/webhooks", content=body, headers=headers)

    assert response.json() == {"ok": True, "orderId": 2002}
    db.expire_all()
    row = db.query(Subscription).filter(Subscription.user_id == "user-9").one()
    assert row.status == "active"
    assert row.current_period_end is not None


@pytest.mark.asyncio
async def test_order_paid_prefers_note_attribute_user_id(client, db):
    db.add(Profile(user_id="user-2", email="checkout@example.com"))
    db.commit()

    payload = {
        "id": 3003,
        "email": "checkout@example.com",
        "note_attributes": [
            {"name": "gift", "value": "no"},
            {"name": "supabase_user_id", "value": "user-1"},
        ],
    }
    body, headers = signed(payload, "orders/paid")
    response = await client.post("/api/shopify/webhooks", content=body, headers=headers)

    assert response.json() == {"ok": True, "orderId": 3003}
    rows = db.query(Subscription).all()
    assert [r.user_id for r in rows] == ["user-1"]
    assert rows[0].status == "active"


def test_note_attribute_lookup():
    payload = {"note_attributes": [{"name": "user_id", "value": "abc"}, {"name": "empty", "value": ""}]}

    assert note_attribute(payload, "user_id") == "abc"
    assert note_attribute(payload, "empty") is None
    assert note_attribute(payload, "supabase_user_id") is None
    assert note_attribute({"note_attributes": "bad"}, "user_id") is None
    assert note_attribute({}, "user_id") is None
