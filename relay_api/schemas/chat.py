from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: List[ChatMessage] = Field(min_length=1)
    client_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("clientId", "client_id"))
    stream: bool = False

    def user_texts(self) -> List[str]:
        return [m.content for m in self.messages if m.role == "user"]


class ChatResponse(BaseModel):
    reply: str
