import logging
from datetime import datetime
from typing import Optional, Tuple
from sqlalchemy.orm import Session

from ventfreely.core.utils import as_utc, isoformat, utcnow
from ventfreely.db.models.profile import Profile, UserMemory

logger = logging.getLogger(__name__)

MIN_CONFIDENCE_TO_INJECT = 20


def get_user_memory(db: Session, user_id: str) -> Optional[UserMemory]:
    try:
        return db.query(UserMemory).filter(UserMemory.user_id == user_id).first()
    except Exception as e:
        logger.error(f"get_user_memory: failed to read user_memory for {user_id}: {e}")
        db.rollback()
        return None


def memory_payload(memory: Optional[UserMemory]) -> Optional[dict]:
    if memory is None:
        return None
    return {
        "dominant_emotions": memory.dominant_emotions,
        "recurring_themes": memory.recurring_themes,
        "preferred_tone": memory.preferred_tone,
        "energy_pattern": memory.energy_pattern,
        "updated_at": isoformat(memory.updated_at),
    }


def compute_memory_confidence(memory: Optional[UserMemory], now: Optional[datetime] = None) -> Tuple[str, int]:
    """
    Scores how much we trust the stored hints, from 0 to 100.
    Stale memories lose points: -8 after 14 days, -15 after 30, -25 after 60.
    """
    if memory is None:
        return "none", 0

    score = 0
    emotions = len(memory.dominant_emotions or [])
    themes = len(memory.recurring_themes or [])
    if emotions >= 1:
        score += 35
    if emotions >= 2:
        score += 10
    if themes >= 1:
        score += 25
    if memory.preferred_tone:
        score += 10
    if memory.energy_pattern:
        score += 10

    updated_at = as_utc(memory.updated_at)
    if updated_at:
        days = ((as_utc(now) or utcnow()) - updated_at).days
        if days >= 60:
            score -= 25
        elif days >= 30:
            score -= 15
        elif days >= 14:
            score -= 8

    score = max(0, min(100, score))

    if score >= 70:
        level = "high"
    elif score >= 40:
        level = "medium"
    else:
        level = "low"
    return level, score


def build_memory_block(memory: Optional[UserMemory], now: Optional[datetime] = None) -> str:
    if memory is None:
        return ""

    level, score = compute_memory_confidence(memory, now)
    if score < MIN_CONFIDENCE_TO_INJECT:
        return ""

    lines = []
    if memory.dominant_emotions:
        lines.append(f"- Emotions that sometimes appear: {', '.join(memory.dominant_emotions)}")
    if memory.recurring_themes:
        lines.append(f"- Themes that sometimes come up: {', '.join(memory.recurring_themes)}")
    if memory.preferred_tone:
        lines.append(f"- Tone preference: {memory.preferred_tone}")
    if memory.energy_pattern:
        lines.append(f"- Energy tendency: {memory.energy_pattern}")

    if not lines:
        return ""

    hints = "\n".join(lines)
    return f"""Soft context (use gently; not guaranteed):
Confidence: {level} ({score}/100)

{hints}

How to use this:
- Treat as hints, not facts.
- Only reflect a hint if it clearly helps the user feel understood.
- Use tentative language: "maybe", "it sounds like", "sometimes", "could be".
- Never claim certainty, never label/diagnose.
- Never mention any database, memory system, or "patterns" explicitly."""


def clear_memory(db: Session, user_id: str) -> int:
    count = db.query(UserMemory).filter(UserMemory.user_id == user_id).delete()
    db.commit()
    return count


def memory_enabled_for(db: Session, user_id: str) -> bool:
    """Users who switched memory off get no soft context. Missing profile means enabled."""
    try:
        profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    except Exception as e:
        logger.error(f"memory_enabled_for: failed to read profile for {user_id}: {e}")
        db.rollback()
        return True
    return profile is None or profile.memory_enabled is not False
