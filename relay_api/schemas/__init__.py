from relay_api.schemas.chat import ChatMessage, ChatRequest, ChatResponse
from relay_api.schemas.chatbot_config import BusinessInfo, ChatbotConfig, FaqItem, ServicePlan
from relay_api.schemas.engagement import EngagementRequest, EngagementResponse
from relay_api.schemas.instagram import InboundMessage, MessagingEvent, WebhookEnvelope
from relay_api.schemas.tenant import TenantRecord
