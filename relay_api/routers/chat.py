"""Web chat API used by the embeddable widget."""

import json
import time
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from relay_api.deps import get_completion_service, get_session_factory, get_tenant_directory
from relay_api.logging_config import get_logger
from relay_api.schemas.chat import ChatRequest, ChatResponse
from relay_api.schemas.tenant import TenantRecord
from relay_api.services.analytics_service import Exchange, record_exchange_task
from relay_api.services.completion_service import CompletionService
from relay_api.services.prompt_service import render_system_prompt
from relay_api.services.tenant_directory import TenantDirectory

logger = get_logger("chat")

router = APIRouter(prefix="/api")

CHANNEL = "webchat"
SESSION_HEADER = "X-Session-Id"
DEFAULT_SESSION_ID = "anonymous"
ALLOWED_METHODS = "GET, POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type, X-Session-Id"


def cors_headers(origin: Optional[str], tenant: Optional[TenantRecord]) -> dict:
    """Echo the origin only when the tenant allows it, otherwise ``*``."""
    allow_origin = "*"
    if origin and tenant is not None and origin in tenant.allowed_origins:
        allow_origin = origin
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


def resolve_tenant(directory: TenantDirectory, client_id: Optional[str], origin: Optional[str]) -> Optional[TenantRecord]:
    """An explicit client id wins over origin inference."""
    if client_id:
        tenant = directory.get_by_id(client_id)
        if tenant is not None:
            return tenant
        logger.info("Unknown clientId, resolving by origin", extra={"context": {"client_id": client_id}})
    return directory.resolve_by_origin(origin)


@router.options("/chat")
async def chat_preflight(request: Request, directory: TenantDirectory = Depends(get_tenant_directory)):
    origin = request.headers.get("origin")
    tenant = await run_in_threadpool(directory.resolve_by_origin, origin)
    return Response(status_code=status.HTTP_200_OK, headers=cors_headers(origin, tenant))


@router.post("/chat")
async def chat(
    request: Request,
    directory: TenantDirectory = Depends(get_tenant_directory),
    completion: CompletionService = Depends(get_completion_service),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    origin = request.headers.get("origin")
    try:
        payload = await request.json()
        chat_request = ChatRequest.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        logger.info("Invalid chat request", extra={"context": {"error": str(exc)[:200]}})
        return JSONResponse(
            {"error": "Messages array required"},
            status_code=status.HTTP_400_BAD_REQUEST,
            headers=cors_headers(origin, None),
        )

    tenant = await run_in_threadpool(resolve_tenant, directory, chat_request.client_id, origin)
    headers = cors_headers(origin, tenant)
    system_prompt = render_system_prompt(tenant.config if tenant else None)
    history = [message.model_dump() for message in chat_request.messages]
    user_texts = chat_request.user_texts()

    exchange = None
    if tenant is not None:
        exchange = Exchange(
            tenant_id=tenant.id,
            channel=CHANNEL,
            user_id=request.headers.get(SESSION_HEADER) or DEFAULT_SESSION_ID,
            user_message=user_texts[-1] if user_texts else "",
            bot_reply="",
            timestamp=datetime.now(timezone.utc),
            message_count=len(chat_request.messages),
            lead_text=" ".join(user_texts),
        )
    else:
        logger.warning("No tenant resolved, skipping analytics", extra={"context": {"origin": origin}})

    started = time.monotonic()

    if chat_request.stream:

        async def event_stream() -> AsyncIterator[str]:
            fragments = []
            async for fragment in completion.stream(system_prompt, history):
                fragments.append(fragment)
                yield f"data: {json.dumps({'content': fragment})}\n\n"
            yield "data: [DONE]\n\n"
            if exchange is not None:
                exchange.bot_reply = "".join(fragments)
                exchange.response_time_ms = (time.monotonic() - started) * 1000

        background = BackgroundTask(record_exchange_task, session_factory, exchange) if exchange else None
        stream_headers = {**headers, "Cache-Control": "no-cache", "Connection": "keep-alive"}
        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers=stream_headers,
            background=background,
        )

    reply = await completion.reply(system_prompt, history)
    background = None
    if exchange is not None:
        exchange.bot_reply = reply
        exchange.response_time_ms = (time.monotonic() - started) * 1000
        background = BackgroundTask(record_exchange_task, session_factory, exchange)
    return JSONResponse(ChatResponse(reply=reply).model_dump(), headers=headers, background=background)
