from sqlalchemy import Column, Integer, String, Text, Date, DateTime, JSON, UniqueConstraint
from ventfreely.core.utils import utcnow
from ventfreely.db.base_class import Base


class DailyReflection(Base):
    __tablename__ = "daily_reflections"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_reflections_user_date"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), index=True, nullable=False)
    date = Column(Date, nullable=False)  # local calendar day

    positive_text = Column(Text, nullable=False)
    emotion = Column(String(32), nullable=True)
    energy = Column(String(32), nullable=True)
    score = Column(Integer, nullable=False)  # Low=1 .. Great=4

    created_at = Column(DateTime(timezone=True), default=utcnow)


class WeeklyReport(Base):
    __tablename__ = "weekly_reports"

    user_id = Column(String(64), primary_key=True)
    week_start = Column(Date, primary_key=True)
    week_end = Column(Date, nullable=False)

    completed_days = Column(Integer, default=0)
    top_emotion = Column(String(32), nullable=True)
    trend = Column(String(8), nullable=False)  # up | down | flat | na
    insights = Column(JSON, nullable=True)

    updated_at = Column(DateTime(timezone=True), default=utcnow)
