import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo
from sqlalchemy.orm import Session

from ventfreely.db.models.reflection import DailyReflection

logger = logging.getLogger(__name__)

EMOTIONS = ("Grateful", "Calm", "Happy", "Hopeful")
ENERGIES = ("Low", "Okay", "Good", "Great")

ENERGY_TO_SCORE = {"low": 1, "okay": 2, "good": 3, "great": 4}
DEFAULT_SCORE = 2


def energy_to_score(energy: Optional[str]) -> int:
    return ENERGY_TO_SCORE.get((energy or "").strip().lower(), DEFAULT_SCORE)


def local_today(tz_name: str, now: Optional[datetime] = None) -> date:
    """Calendar day in the app's home timezone, so 'today' matches what users see."""
    tz = ZoneInfo(tz_name)
    if now is None:
        return datetime.now(tz).date()
    return now.astimezone(tz).date()


def week_range(end: date) -> Tuple[date, date]:
    """Seven days ending on `end`, inclusive."""
    return end - timedelta(days=6), end


def upsert_reflection(
    service_db: Session,
    user_id: str,
    day: date,
    positive_text: str,
    emotion: str,
    energy: str,
) -> str:
    """
    Writes the user's reflection for `day`, replacing an earlier one from the
    same day. Returns "inserted" or "updated".
    """
    score = energy_to_score(energy)

    existing = (
        service_db.query(DailyReflection)
        .filter(DailyReflection.user_id == user_id, DailyReflection.date == day)
        .first()
    )

    if existing:
        existing.positive_text = positive_text
        existing.emotion = emotion
        existing.energy = energy
        existing.score = score
        mode = "updated"
    else:
        service_db.add(DailyReflection(
            user_id=user_id,
            date=day,
            positive_text=positive_text,
            emotion=emotion,
            energy=energy,
            score=score,
        ))
        mode = "inserted"

    try:
        service_db.commit()
    except Exception:
        service_db.rollback()
        raise
    return mode


def get_reflection(db: Session, user_id: str, day: date) -> Optional[DailyReflection]:
    return (
        db.query(DailyReflection)
        .filter(DailyReflection.user_id == user_id, DailyReflection.date == day)
        .first()
    )


def fetch_reflections(db: Session, user_id: str, start: date, end: Optional[date] = None) -> List[DailyReflection]:
    query = db.query(DailyReflection).filter(
        DailyReflection.user_id == user_id,
        DailyReflection.date >= start,
    )
    if end is not None:
        query = query.filter(DailyReflection.date <= end)
    return query.order_by(DailyReflection.date.asc()).all()


def clear_reflections(db: Session, user_id: str) -> int:
    count = db.query(DailyReflection).filter(DailyReflection.user_id == user_id).delete()
    db.commit()
    return count
