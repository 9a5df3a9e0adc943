from typing import List, Optional

from pydantic import BaseModel, Field

from relay_api.schemas.chatbot_config import ChatbotConfig


class TenantRecord(BaseModel):
    """Read-only view of a tenant, detached from the database session."""

    id: str
    name: str
    status: str = "active"
    domain: Optional[str] = None
    platform_recipient_ids: List[str] = Field(default_factory=list)
    config: Optional[ChatbotConfig] = None

    @property
    def allowed_origins(self) -> List[str]:
        return list(self.config.allowed_origins) if self.config else []
