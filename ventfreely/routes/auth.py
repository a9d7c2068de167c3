from typing import Optional
from fastapi import APIRouter, Depends

from ventfreely.core.dependencies import CurrentUser, get_optional_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me")
def me(user: Optional[CurrentUser] = Depends(get_optional_user)):
    # Never 401: the client uses this to decide which nav to show.
    return {"loggedIn": user is not None, "email": user.email if user else None}
