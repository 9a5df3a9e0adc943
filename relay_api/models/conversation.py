import uuid

from sqlalchemy import Column, Date, DateTime, Index, Text, Uuid

from relay_api.database import Base


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (Index("ix_conversations_client_created", "client_id", "created_at"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Text, nullable=False)
    channel = Column(Text, nullable=False)  # instagram, webchat
    user_id = Column(Text, nullable=False)
    user_message = Column(Text, nullable=False, default="")
    bot_reply = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False)
    date = Column(Date, nullable=False)  # local business date
    lead_email = Column(Text)
    lead_phone = Column(Text)
