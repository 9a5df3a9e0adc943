from relay_api.models.client import Client
from relay_api.models.conversation import Conversation
from relay_api.models.daily_analytics import DailyAnalytics, HourlyActivity
from relay_api.models.engagement_event import EngagementEvent
from relay_api.models.lead import Lead

__all__ = [
    "Client",
    "Conversation",
    "DailyAnalytics",
    "HourlyActivity",
    "EngagementEvent",
    "Lead",
]
