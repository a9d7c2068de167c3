"""
Entitlement resolution: decides whether a user may use the gated features
(daily check-ins, weekly views, chat) right now.

A user with no subscription row gets a 3-day trial provisioned on first use.
Legacy rows without a trial expiry get one backfilled. Paid access comes from
an active/trialing status whose period end is open or in the future.

Every store failure is logged and resolved to a terminal result; nothing
raises past `resolve_access`.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from ventfreely.core.utils import as_utc, utcnow
from ventfreely.db.crud.subscriptions import (
    read_latest_subscription,
    insert_trial_row,
    backfill_trial_ends_at,
)
from ventfreely.schemas.access import AccessResult

logger = logging.getLogger(__name__)

TRIAL_DAYS = 3

CANCELED_STATUSES = frozenset({"canceled", "cancelled", "expired", "inactive"})
PREMIUM_STATUSES = frozenset({"active", "trialing"})


def normalize_status(raw: Optional[str]) -> str:
    return (raw or "").strip().lower()


def is_future(value: Optional[datetime], now: datetime) -> bool:
    # The expiry instant itself already counts as expired.
    value = as_utc(value)
    return value is not None and value > now


def is_premium_active(raw_status: Optional[str], current_period_end: Optional[datetime], now: datetime) -> bool:
    status = normalize_status(raw_status)
    if status in CANCELED_STATUSES or status not in PREMIUM_STATUSES:
        return False
    # No period end means an open-ended paid subscription.
    return current_period_end is None or is_future(current_period_end, now)


def denied(premium_until: Optional[datetime] = None, status: Optional[str] = None) -> AccessResult:
    return AccessResult(
        has_access=False,
        reason="trial_expired",
        trial_ends_at=None,
        premium_until=as_utc(premium_until),
        status=status,
    )


def resolve_access(
    db: Session,
    service_db: Session,
    user_id: str,
    now: Optional[datetime] = None,
) -> AccessResult:
    """
    Resolves the user's access, provisioning or backfilling the trial when needed.

    `db` is the session-scoped handle used for the read. `service_db` is the
    elevated handle, used only for the two provisioning writes.
    """
    if not user_id:
        return denied()

    now = as_utc(now) or utcnow()

    try:
        row = read_latest_subscription(db, user_id)
    except Exception as e:
        logger.error(f"resolve_access: read subscription error for {user_id}: {e}")
        db.rollback()
        row = None

    if row is None:
        trial_ends_at = now + timedelta(days=TRIAL_DAYS)
        try:
            insert_trial_row(service_db, user_id, trial_ends_at)
        except Exception as e:
            logger.error(f"resolve_access: trial provisioning failed for {user_id}: {e}")
            return denied()

        logger.info(f"resolve_access: trial provisioned for {user_id} until {trial_ends_at.isoformat()}")
        return AccessResult(
            has_access=True,
            reason="trial_active",
            trial_ends_at=trial_ends_at,
            premium_until=None,
            status="trial",
        )

    raw_status = row.status
    premium_until = as_utc(row.current_period_end)

    if is_premium_active(raw_status, premium_until, now):
        return AccessResult(
            has_access=True,
            reason="premium_active",
            trial_ends_at=as_utc(row.trial_ends_at),
            premium_until=premium_until,
            status=raw_status,
        )

    trial_ends_at = as_utc(row.trial_ends_at)
    if trial_ends_at is None:
        trial_ends_at = now + timedelta(days=TRIAL_DAYS)
        try:
            updated = backfill_trial_ends_at(service_db, user_id, trial_ends_at)
            if not updated:
                # Another request backfilled first; report the stored value.
                current = read_latest_subscription(service_db, user_id)
                if current is not None and current.trial_ends_at is not None:
                    trial_ends_at = as_utc(current.trial_ends_at)
        except Exception as e:
            logger.error(f"resolve_access: trial backfill failed for {user_id}: {e}")
            return denied(premium_until, raw_status)

    if is_future(trial_ends_at, now):
        return AccessResult(
            has_access=True,
            reason="trial_active",
            trial_ends_at=trial_ends_at,
            premium_until=premium_until,
            status=raw_status,
        )

    return AccessResult(
        has_access=False,
        reason="trial_expired",
        trial_ends_at=trial_ends_at,
        premium_until=premium_until,
        status=raw_status,
    )
