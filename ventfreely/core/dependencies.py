import re
from dataclasses import dataclass
from typing import Optional, Tuple
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ventfreely.core.jwt import decode_token
from ventfreely.db.session import get_db, get_service_db
from ventfreely.schemas.access import AccessResult
from ventfreely.services.access import resolve_access
from ventfreely.services.prefs import sync_profile

BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: Optional[str] = None


def _token_from_request(request: Request) -> Optional[str]:
    """Native app sends a Bearer token; the web client sends the session cookie."""
    header = request.headers.get("authorization")
    if header:
        match = BEARER_RE.match(header.strip())
        if match:
            return match.group(1).strip()
    return request.cookies.get("access_token")


def get_optional_user(request: Request) -> Optional[CurrentUser]:
    token = _token_from_request(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        return None

    return CurrentUser(id=str(payload["sub"]), email=payload.get("email"))


def get_current_user(
    user: Optional[CurrentUser] = Depends(get_optional_user),
    service_db: Session = Depends(get_service_db),
) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")
    sync_profile(service_db, user.id, user.email)
    return user


def get_access(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    service_db: Session = Depends(get_service_db),
) -> AccessResult:
    return resolve_access(db, service_db, user.id)


def require_access(
    user: CurrentUser = Depends(get_current_user),
    access: AccessResult = Depends(get_access),
) -> Tuple[CurrentUser, AccessResult]:
    """Gate for paid features: 402 when neither a trial nor premium is active."""
    if not access.has_access:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="premium_required")
    return user, access
