from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from ventfreely.core.utils import utcnow
from ventfreely.db.models.subscription import Subscription, WebhookEvent


def read_latest_subscription(db: Session, user_id: str) -> Optional[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.updated_at.desc(), Subscription.id.desc())
        .first()
    )


def insert_trial_row(service_db: Session, user_id: str, trial_ends_at: datetime) -> Subscription:
    now = utcnow()
    row = Subscription(
        user_id=user_id,
        status="trial",
        trial_ends_at=trial_ends_at,
        created_at=now,
        updated_at=now,
    )
    service_db.add(row)
    try:
        service_db.commit()
    except Exception:
        service_db.rollback()
        raise
    return row


def backfill_trial_ends_at(service_db: Session, user_id: str, trial_ends_at: datetime) -> int:
    """Sets trial_ends_at only where it is still empty, so it is written once per row."""
    try:
        count = (
            service_db.query(Subscription)
            .filter(Subscription.user_id == user_id, Subscription.trial_ends_at.is_(None))
            .update({Subscription.trial_ends_at: trial_ends_at}, synchronize_session=False)
        )
        service_db.commit()
    except Exception:
        service_db.rollback()
        raise
    return count


def get_subscription_by_shopify_id(service_db: Session, shopify_subscription_id: str) -> Optional[Subscription]:
    return (
        service_db.query(Subscription)
        .filter(Subscription.shopify_subscription_id == shopify_subscription_id)
        .order_by(Subscription.updated_at.desc(), Subscription.id.desc())
        .first()
    )


def webhook_event_exists(service_db: Session, webhook_id: str) -> bool:
    return (
        service_db.query(WebhookEvent.id)
        .filter(WebhookEvent.webhook_id == webhook_id)
        .first()
        is not None
    )


def record_webhook_event(service_db: Session, webhook_id: str, topic: str) -> WebhookEvent:
    event = WebhookEvent(webhook_id=webhook_id, topic=topic)
    service_db.add(event)
    try:
        service_db.commit()
    except Exception:
        service_db.rollback()
        raise
    return event
