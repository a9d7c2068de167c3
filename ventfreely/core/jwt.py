from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from ventfreely.core.config import settings


def create_access_token(user_id: str, email: Optional[str] = None, expires_minutes: int = 60) -> str:
    """
    Issues a token shaped like the identity provider's. Only used by tests and
    local tooling; production tokens come from the provider itself.
    """
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if email:
        to_encode["email"] = email
    if settings.AUTH_JWT_AUDIENCE:
        to_encode["aud"] = settings.AUTH_JWT_AUDIENCE

    return jwt.encode(to_encode, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def decode_token(token: str):
    options = {"verify_aud": bool(settings.AUTH_JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
            options=options,
        )
    except JWTError:
        return None
