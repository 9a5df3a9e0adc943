from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from relay_api import models  # noqa: F401  registers tables on Base.metadata
from relay_api.config import settings
from relay_api.database import Base, engine
from relay_api.logging_config import get_logger, setup_logging
from relay_api.routers import chat, engagement, reports, webhook
from relay_api.services.completion_service import CompletionService
from relay_api.services.dedup_guard import DedupGuard
from relay_api.services.instagram_service import InstagramService
from relay_api.services.llm import OpenAIProvider

setup_logging(settings.log_level)
logger = get_logger("main")

app = FastAPI(
    title="Relay API",
    description="Multi-tenant chatbot relay for Instagram and web chat",
    version="0.1.0",
)

app.state.dedup_guard = DedupGuard(max_size=settings.dedup_max_size)
app.state.completion_service = CompletionService(
    OpenAIProvider(
        api_key=settings.openai_api_key,
        default_model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
    ),
    model=settings.openai_model,
    temperature=settings.openai_temperature,
    max_tokens=settings.openai_max_tokens,
)
app.state.instagram_service = InstagramService(
    access_token=settings.instagram_access_token,
    api_url=settings.instagram_api_url,
)

app.include_router(webhook.router)
app.include_router(chat.router)
app.include_router(engagement.router)
app.include_router(reports.router)


@app.on_event("startup")
async def on_startup() -> None:
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
    missing = [
        name
        for name, value in (
            ("OPENAI_API_KEY", settings.openai_api_key),
            ("INSTAGRAM_ACCESS_TOKEN", settings.instagram_access_token),
            ("META_APP_SECRET", settings.meta_app_secret),
        )
        if not value
    ]
    if missing:
        logger.warning("Running with features disabled", extra={"context": {"missing": missing}})
    logger.info("Relay API started", extra={"context": {"ack_mode": settings.webhook_ack_mode}})


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Relay API is running"


@app.get("/health")
async def health():
    return {"status": "ok"}
