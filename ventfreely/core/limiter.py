from slowapi import Limiter
from slowapi.util import get_remote_address
from ventfreely.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATELIMIT_ENABLED)
