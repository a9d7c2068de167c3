from sqlalchemy import Column, Integer, String, DateTime
from ventfreely.core.utils import utcnow
from ventfreely.db.base_class import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    # Not unique: duplicate rows per user are tolerated and the most recently
    # updated one wins.
    user_id = Column(String(64), index=True, nullable=False)

    status = Column(String(32), nullable=True)  # trial | active | trialing | canceled | ...
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)  # None = open-ended
    shopify_subscription_id = Column(String(64), index=True, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True)
    webhook_id = Column(String(255), unique=True, nullable=False)
    topic = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
