import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ventfreely.core.config import settings
from ventfreely.core.dependencies import require_access
from ventfreely.core.utils import utcnow
from ventfreely.db.models.reflection import WeeklyReport
from ventfreely.db.session import get_db
from ventfreely.services.daily import fetch_reflections, local_today, week_range
from ventfreely.services.weekly import change_note, summarize_week, weekly_bundle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/insights", tags=["insights"])


@router.get("/weekly")
def weekly_insights(
    gate=Depends(require_access),
    db: Session = Depends(get_db),
):
    user, access = gate
    since = local_today(settings.APP_TIMEZONE) - timedelta(days=13)

    try:
        rows = fetch_reflections(db, user.id, since)
    except Exception as e:
        logger.error(f"insights/weekly fetch error for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="fetch_failed")

    # Chronological split: the newest seven rows are "this week".
    split = max(0, len(rows) - 7)
    prev_rows, last_rows = rows[:split][-7:], rows[split:]

    payload = weekly_bundle(last_rows, prev_rows)
    payload["access"] = access.to_payload()
    return payload


@router.get("/compare")
def compare_weeks(
    gate=Depends(require_access),
    db: Session = Depends(get_db),
):
    user, access = gate
    this_start, this_end = week_range(local_today(settings.APP_TIMEZONE))
    last_start, last_end = week_range(this_end - timedelta(days=7))

    try:
        this_week = summarize_week(fetch_reflections(db, user.id, this_start, this_end), this_start, this_end)
        last_week = summarize_week(fetch_reflections(db, user.id, last_start, last_end), last_start, last_end)
    except Exception as e:
        logger.error(f"insights/compare fetch error for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="fetch_failed")

    # Snapshot is best effort; the comparison is still returned without it.
    try:
        db.merge(WeeklyReport(
            user_id=user.id,
            week_start=this_start,
            week_end=this_end,
            completed_days=this_week["completedDays"],
            top_emotion=this_week["topEmotion"],
            trend=this_week["trend"],
            insights={"lines": this_week["insights"]},
            updated_at=utcnow(),
        ))
        db.commit()
    except Exception as e:
        logger.error(f"insights/compare snapshot failed for {user.id}: {e}")
        db.rollback()

    delta_days = this_week["completedDays"] - last_week["completedDays"]
    return {
        "thisWeek": this_week,
        "lastWeek": last_week,
        "change": {"deltaDays": delta_days, "note": change_note(delta_days)},
        "access": access.to_payload(),
    }
