import uuid

from sqlalchemy import Column, DateTime, Text, Uuid

from relay_api.database import Base, JSONDocument


class EngagementEvent(Base):
    __tablename__ = "engagement_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Text, index=True)
    event_type = Column(Text, nullable=False)  # page_view, chat_opened, first_message, ...
    session_id = Column(Text)
    page_url = Column(Text)
    payload = Column(JSONDocument, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)
