from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./relay.db"
    debug: bool = False
    log_level: str = "INFO"
    auto_create_tables: bool = True

    # Instagram webhook + send API
    webhook_verify_token: str = "relay_webhook_token"
    meta_app_secret: Optional[str] = None
    require_webhook_signature: bool = False
    webhook_ack_mode: str = "sync"  # sync, background
    instagram_access_token: Optional[str] = None
    instagram_api_url: str = "https://graph.instagram.com/v21.0/me/messages"

    # Completion API
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_max_tokens: int = 500
    openai_temperature: float = 0.7
    openai_timeout_seconds: float = 60.0

    # Routing
    dedup_max_size: int = 5000
    tenant_fallback_enabled: bool = True
    default_tenant_id: Optional[str] = None

    # Analytics
    business_hours_start: int = 9
    business_hours_end: int = 17
    business_utc_offset_hours: int = 11
    peak_hour_mode: str = "last_write"  # last_write, histogram

    admin_token: Optional[str] = None
    alert_bot_token: Optional[str] = None
    alert_chat_id: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
