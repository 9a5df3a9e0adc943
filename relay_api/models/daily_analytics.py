from sqlalchemy import Column, Date, Float, Integer, Text

from relay_api.database import Base


class DailyAnalytics(Base):
    """Per-tenant, per-day counters. Written only through merge-upserts."""

    __tablename__ = "daily_analytics"

    client_id = Column(Text, primary_key=True)
    date = Column(Date, primary_key=True)
    total_conversations = Column(Integer, nullable=False, default=0)
    after_hours_conversations = Column(Integer, nullable=False, default=0)
    avg_response_time_ms = Column(Float, nullable=False, default=0.0)
    response_time_samples = Column(Integer, nullable=False, default=0)
    avg_messages_per_conversation = Column(Float, nullable=False, default=0.0)
    peak_hour = Column(Integer)
    channel_webchat = Column(Integer, nullable=False, default=0)
    channel_instagram = Column(Integer, nullable=False, default=0)
    leads_captured = Column(Integer, nullable=False, default=0)


class HourlyActivity(Base):
    __tablename__ = "hourly_activity"

    client_id = Column(Text, primary_key=True)
    date = Column(Date, primary_key=True)
    hour = Column(Integer, primary_key=True)  # local hour, 0-23
    count = Column(Integer, nullable=False, default=0)
