from sqlalchemy import Column, String, Boolean, DateTime, JSON
from ventfreely.core.utils import utcnow
from ventfreely.db.base_class import Base


class Profile(Base):
    __tablename__ = "profiles"

    user_id = Column(String(64), primary_key=True)
    email = Column(String(255), index=True, nullable=True)

    memory_enabled = Column(Boolean, default=True)
    reflection_memory_enabled = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)


class UserMemory(Base):
    """Long-lived hints about the user, written by an offline summarizer."""
    __tablename__ = "user_memory"

    user_id = Column(String(64), primary_key=True)
    dominant_emotions = Column(JSON, nullable=True)
    recurring_themes = Column(JSON, nullable=True)
    preferred_tone = Column(String(64), nullable=True)
    energy_pattern = Column(String(64), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
