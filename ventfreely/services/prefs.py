import logging
from typing import Optional
from sqlalchemy.orm import Session
from ventfreely.db.models.profile import Profile

logger = logging.getLogger(__name__)


def sync_profile(service_db: Session, user_id: str, email: Optional[str]) -> None:
    """
    Records the token identity so payment webhooks can find the user by email.
    Only writes when the profile is missing or the email changed. Errors are logged.
    """
    try:
        profile = service_db.query(Profile).filter(Profile.user_id == user_id).first()
        if profile is None:
            service_db.add(Profile(user_id=user_id, email=email))
            service_db.commit()
        elif email and profile.email != email:
            profile.email = email
            service_db.commit()
    except Exception as e:
        logger.error(f"sync_profile: profile upsert failed for {user_id}: {e}")
        service_db.rollback()


def ensure_profile_and_get_prefs(db: Session, user_id: str, email: Optional[str]) -> dict:
    """
    Makes sure the user has a profile row and returns their memory preferences.
    Store errors are logged and the defaults (both enabled) are returned.
    """
    try:
        profile = db.query(Profile).filter(Profile.user_id == user_id).first()
        if profile is None:
            profile = Profile(user_id=user_id, email=email)
            db.add(profile)
            db.commit()
            db.refresh(profile)
        elif email and profile.email != email:
            profile.email = email
            db.commit()
    except Exception as e:
        logger.error(f"ensure_profile_and_get_prefs: profile error for {user_id}: {e}")
        db.rollback()
        return {"memoryEnabled": True, "reflectionMemoryEnabled": True}

    return {
        "memoryEnabled": profile.memory_enabled if profile.memory_enabled is not None else True,
        "reflectionMemoryEnabled": (
            profile.reflection_memory_enabled if profile.reflection_memory_enabled is not None else True
        ),
    }


def update_prefs(
    db: Session,
    user_id: str,
    memory_enabled: Optional[bool] = None,
    reflection_memory_enabled: Optional[bool] = None,
) -> bool:
    """Applies the given preference changes. Returns False when there was nothing to change."""
    update = {}
    if memory_enabled is not None:
        update[Profile.memory_enabled] = memory_enabled
    if reflection_memory_enabled is not None:
        update[Profile.reflection_memory_enabled] = reflection_memory_enabled

    if not update:
        return False

    db.query(Profile).filter(Profile.user_id == user_id).update(update, synchronize_session=False)
    db.commit()
    return True
