from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessagingParty(BaseModel):
    id: Optional[str] = None


class MessagingMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mid: Optional[str] = None
    text: Optional[str] = None
    is_echo: bool = False


class MessagingEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sender: Optional[MessagingParty] = None
    recipient: Optional[MessagingParty] = None
    message: Optional[MessagingMessage] = None


class WebhookEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    messaging: List[MessagingEvent] = Field(default_factory=list)


class WebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: Optional[str] = None
    entry: List[WebhookEntry] = Field(default_factory=list)


class InboundMessage(BaseModel):
    """One inbound chat message, normalized across channels."""

    external_id: Optional[str] = None
    sender_id: str
    recipient_id: Optional[str] = None
    session_id: Optional[str] = None
    text: Optional[str] = None
    is_echo: bool = False
    channel: str  # instagram, webchat

    @classmethod
    def from_messaging_event(cls, event: MessagingEvent, page_id: Optional[str] = None) -> Optional["InboundMessage"]:
        if not event.sender or not event.sender.id or not event.message:
            return None
        recipient_id = event.recipient.id if event.recipient and event.recipient.id else page_id
        return cls(
            external_id=event.message.mid,
            sender_id=event.sender.id,
            recipient_id=recipient_id,
            text=event.message.text,
            is_echo=event.message.is_echo,
            channel="instagram",
        )
