import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ventfreely.core.config import settings
from ventfreely.core.dependencies import CurrentUser, get_current_user, require_access
from ventfreely.db.session import get_db, get_service_db
from ventfreely.schemas.daily import DailySubmit
from ventfreely.services.daily import (
    fetch_reflections,
    get_reflection,
    local_today,
    upsert_reflection,
    week_range,
)
from ventfreely.services.weekly import weekly_bundle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/daily", tags=["daily"])


@router.post("/submit")
def submit_daily(
    body: DailySubmit,
    gate=Depends(require_access),
    service_db: Session = Depends(get_service_db),
):
    user, access = gate
    today = local_today(settings.APP_TIMEZONE)

    try:
        mode = upsert_reflection(service_db, user.id, today, body.positive_text, body.emotion, body.energy)
    except Exception as e:
        logger.error(f"daily/submit: save failed for {user.id} on {today}: {e}")
        raise HTTPException(status_code=500, detail="save_failed")

    return {"ok": True, "date": today.isoformat(), "mode": mode, "access": access.to_payload()}


@router.get("/today")
def daily_today(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = local_today(settings.APP_TIMEZONE)
    row = get_reflection(db, user.id, today)

    entry = None
    if row:
        entry = {
            "positiveText": row.positive_text,
            "emotion": row.emotion,
            "energy": row.energy,
            "score": row.score,
        }
    return {"date": today.isoformat(), "done": row is not None, "entry": entry}


@router.get("/week")
def daily_week(
    gate=Depends(require_access),
    db: Session = Depends(get_db),
):
    user, access = gate
    start, end = week_range(local_today(settings.APP_TIMEZONE))

    try:
        rows = fetch_reflections(db, user.id, start, end)
    except Exception as e:
        logger.error(f"daily/week fetch error for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="fetch_failed")

    # The previous week only feeds the trend, so a failure here degrades to "na".
    prev_start, prev_end = start - timedelta(days=7), start - timedelta(days=1)
    try:
        prev_rows = fetch_reflections(db, user.id, prev_start, prev_end)
    except Exception as e:
        logger.error(f"daily/week prev fetch error for {user.id}: {e}")
        db.rollback()
        prev_rows = []

    payload = weekly_bundle(rows, prev_rows, fallback_scores=True)
    payload["access"] = access.to_payload()
    return payload
