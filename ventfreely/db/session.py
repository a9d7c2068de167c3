import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ventfreely.core.config import settings

logger = logging.getLogger(__name__)


def _build_engine(url: str):
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    else:
        connect_args = {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


# Session-scoped handle: reads and writes on behalf of the signed-in user.
engine = _build_engine(settings.DATABASE_URL)

# Elevated handle: provisioning writes and webhook ingestion. Never hand it
# to code that only needs to act as the user.
service_engine = _build_engine(settings.service_database_url)

if settings.ENVIRONMENT == "production" and "sqlite" in settings.DATABASE_URL:
    logger.warning("PRODUCTION WARNING: Using SQLite in production is NOT recommended. Use PostgreSQL.")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
ServiceSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=service_engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_service_db():
    db = ServiceSessionLocal()
    try:
        yield db
    finally:
        db.close()
