import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Text, Uuid

from relay_api.database import Base


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Text, nullable=False, index=True)
    conversation_id = Column(Uuid, ForeignKey("conversations.id"), nullable=True)
    channel = Column(Text, nullable=False)
    user_id = Column(Text)
    email = Column(Text)
    phone = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False)
    date = Column(Date, nullable=False)
