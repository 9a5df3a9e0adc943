from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

ENGAGEMENT_EVENT_TYPES = {
    "page_view",
    "chat_opened",
    "first_message",
    "session_end",
    "page_hidden",
    "chat_closed",
}


class EngagementRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    event_type: str = Field(validation_alias=AliasChoices("eventType", "event_type"))
    session_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("sessionId", "session_id"))
    client_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("clientId", "client_id"))
    page_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("pageUrl", "page_url"))

    def extra_fields(self) -> dict:
        return dict(self.model_extra or {})


class EngagementResponse(BaseModel):
    ok: bool = True
