"""
Payment-provider webhook ingestion (Shopify).

Events are deduplicated through the `webhook_events` table before any
subscription row is touched, so provider retries are harmless.
"""
import base64
import hashlib
import hmac
import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from ventfreely.core.utils import utcnow
from ventfreely.db.crud.subscriptions import (
    get_subscription_by_shopify_id,
    read_latest_subscription,
    record_webhook_event,
    webhook_event_exists,
)
from ventfreely.db.models.profile import Profile
from ventfreely.db.models.subscription import Subscription

logger = logging.getLogger(__name__)


def verify_shopify_hmac(raw_body: bytes, hmac_header: Optional[str], secret: Optional[str]) -> bool:
    if not hmac_header or not secret:
        return False
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected.encode("utf-8"), hmac_header.encode("utf-8"))


def resolve_event_id(topic: str, webhook_id: Optional[str], event_id: Optional[str], payload: Any) -> str:
    if webhook_id:
        return webhook_id
    if event_id:
        return f"{topic}:{event_id}"
    payload_id = payload.get("id") if isinstance(payload, dict) else None
    return f"{topic}:{payload_id if payload_id is not None else ''}"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"[shopify-webhook] unparseable timestamp {value!r}")
        return None


def handle_subscription_contract(service_db: Session, topic: str, payload: dict) -> dict:
    contract_id = payload.get("id")
    if contract_id is None:
        return {"ok": True}

    row = get_subscription_by_shopify_id(service_db, str(contract_id))
    if row is None:
        logger.warning(f"[shopify-webhook] no subscription row for contract {contract_id}")
        return {"ok": True}

    status = str(payload.get("status") or "").lower()
    row.status = "active"
    next_billing = _parse_timestamp(payload.get("next_billing_date"))
    if next_billing:
        row.current_period_end = next_billing
    if topic.endswith("/cancel") or status in ("cancelled", "canceled"):
        row.status = "canceled"
    row.updated_at = utcnow()
    service_db.commit()

    logger.info(f"[shopify-webhook] subscription updated for {row.user_id}: status={row.status}")
    return {"ok": True}


def note_attribute(payload: dict, name: str) -> Optional[str]:
    attrs = payload.get("note_attributes")
    if not isinstance(attrs, list):
        return None
    for attr in attrs:
        if isinstance(attr, dict) and attr.get("name") == name and attr.get("value"):
            return str(attr["value"])
    return None


def handle_order_paid(service_db: Session, payload: dict, premium_days: int) -> dict:
    """
    Grants a premium period for a paid order. The buyer is taken from the
    checkout's note attributes when present, otherwise matched by email.
    """
    order_id = payload.get("id")
    user_id = note_attribute(payload, "supabase_user_id") or note_attribute(payload, "user_id")

    if not user_id:
        email = payload.get("email") or (payload.get("customer") or {}).get("email")
        if not email:
            logger.warning(f"[shopify-webhook] orders/paid without user id or email (order {order_id})")
            return {"ok": True}

        profile = (
            service_db.query(Profile)
            .filter(func.lower(Profile.email) == email.strip().lower())
            .first()
        )
        if profile is None:
            logger.warning(f"[shopify-webhook] user not found for email {email}")
            return {"ok": True, "userNotFound": True}
        user_id = profile.user_id

    now = utcnow()
    contract_id = payload.get("subscription_contract_id")

    row = read_latest_subscription(service_db, user_id)
    if row is None:
        row = Subscription(user_id=user_id, created_at=now)
        service_db.add(row)

    row.status = "active"
    row.current_period_end = now + timedelta(days=premium_days)
    row.shopify_subscription_id = str(contract_id) if contract_id else None
    row.updated_at = now
    service_db.commit()

    logger.info(f"[shopify-webhook] order {order_id} activated subscription for {user_id}")
    return {"ok": True, "orderId": order_id}


def ingest_webhook(service_db: Session, topic: str, event_id: str, payload: Any, premium_days: int) -> dict:
    """
    Applies one verified webhook. Store errors are logged and answered with a
    plain ok so the provider does not retry forever.
    """
    try:
        if webhook_event_exists(service_db, event_id):
            logger.info(f"[shopify-webhook] duplicate ignored: {event_id}")
            return {"ok": True, "duplicate": True}
        record_webhook_event(service_db, event_id, topic)
    except Exception as e:
        logger.error(f"[shopify-webhook] webhook_events error for {event_id}: {e}")
        return {"ok": True}

    if not isinstance(payload, dict):
        return {"ok": True, "ignored": topic}

    try:
        if topic.startswith("subscription_contracts/"):
            return handle_subscription_contract(service_db, topic, payload)
        if topic == "orders/paid":
            return handle_order_paid(service_db, payload, premium_days)
    except Exception as e:
        service_db.rollback()
        logger.error(f"[shopify-webhook] handler for {topic} failed: {e}")
        return {"ok": True}

    logger.info(f"[shopify-webhook] ignored topic {topic}")
    return {"ok": True, "ignored": topic}
