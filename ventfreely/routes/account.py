import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ventfreely.core.dependencies import CurrentUser, get_access, get_current_user
from ventfreely.db.session import get_db
from ventfreely.schemas.access import AccessResult
from ventfreely.schemas.account import PreferencesUpdate
from ventfreely.services.conversations import clear_conversations
from ventfreely.services.daily import clear_reflections
from ventfreely.services.memory import clear_memory, get_user_memory, memory_payload
from ventfreely.services.prefs import ensure_profile_and_get_prefs, update_prefs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/account", tags=["account"])


@router.get("/overview")
def account_overview(
    user: CurrentUser = Depends(get_current_user),
    access: AccessResult = Depends(get_access),
    db: Session = Depends(get_db),
):
    prefs = ensure_profile_and_get_prefs(db, user.id, user.email)
    return {"email": user.email, "access": access.to_payload(), "prefs": prefs}


@router.get("/summary")
def account_summary(
    user: CurrentUser = Depends(get_current_user),
    access: AccessResult = Depends(get_access),
    db: Session = Depends(get_db),
):
    memory = get_user_memory(db, user.id)
    return {
        "user": {"email": user.email},
        "access": access.to_payload(),
        "memory": memory_payload(memory),
    }


@router.get("/preferences")
def get_preferences(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ensure_profile_and_get_prefs(db, user.id, user.email)


@router.post("/preferences")
def set_preferences(
    body: PreferencesUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_profile_and_get_prefs(db, user.id, user.email)

    try:
        changed = update_prefs(db, user.id, body.memory_enabled, body.reflection_memory_enabled)
    except Exception as e:
        logger.error(f"account/preferences update failed for {user.id}: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="update_failed")

    if not changed:
        raise HTTPException(status_code=400, detail="No changes")
    return {"ok": True}


def _clear(action, db: Session, user: CurrentUser, label: str) -> dict:
    try:
        action(db, user.id)
    except Exception as e:
        logger.error(f"{label} error for {user.id}: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="delete_failed")
    return {"ok": True}


@router.post("/clear-chat")
def account_clear_chat(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return _clear(clear_conversations, db, user, "clear-chat")


@router.post("/clear-daily")
def account_clear_daily(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return _clear(clear_reflections, db, user, "clear-daily")


@router.post("/clear-memory")
def account_clear_memory(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return _clear(clear_memory, db, user, "clear-memory")
