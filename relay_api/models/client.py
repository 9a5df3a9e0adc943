from sqlalchemy import Column, DateTime, Text

from relay_api.database import Base, JSONDocument


class Client(Base):
    __tablename__ = "clients"

    id = Column(Text, primary_key=True)  # slug, e.g. "onmore"
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="active")  # active, inactive
    domain = Column(Text)
    platform_recipient_ids = Column(JSONDocument, nullable=False, default=list)
    config = Column(JSONDocument, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)
