"""Instagram messaging webhook: verification challenge and message ingest."""

import hmac
import json
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from relay_api.config import settings
from relay_api.deps import (
    get_completion_service,
    get_dedup_guard,
    get_instagram_service,
    get_session_factory,
    get_tenant_directory,
)
from relay_api.logging_config import get_logger
from relay_api.schemas.instagram import InboundMessage, WebhookEnvelope
from relay_api.services.analytics_service import Exchange, record_exchange_task
from relay_api.services.completion_service import CompletionService
from relay_api.services.dedup_guard import DedupGuard
from relay_api.services.instagram_service import InstagramService
from relay_api.services.prompt_service import render_system_prompt
from relay_api.services.result import INVALID_PAYLOAD
from relay_api.services.signature import verify_signature
from relay_api.services.tenant_directory import TenantDirectory

logger = get_logger("webhook")

router = APIRouter()

SIGNATURE_HEADER = "x-hub-signature-256"
ACK_MODE_BACKGROUND = "background"


def _token_matches(token: Optional[str]) -> bool:
    expected = settings.webhook_verify_token
    if not token or not expected:
        return False
    return hmac.compare_digest(token.encode(), expected.encode())


@router.get("/webhook")
async def verify_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    if mode == "subscribe" and _token_matches(token):
        logger.info("Webhook verified")
        return PlainTextResponse(challenge or "")
    logger.warning("Webhook verification failed", extra={"context": {"mode": mode}})
    return PlainTextResponse("Forbidden", status_code=status.HTTP_403_FORBIDDEN)


def _check_signature(raw_body: bytes, header: Optional[str]) -> bool:
    secret = settings.meta_app_secret
    if not secret:
        if settings.require_webhook_signature:
            logger.warning("Webhook signature required but META_APP_SECRET is not set, skipping check")
        return True
    if not header and not settings.require_webhook_signature:
        return True
    return verify_signature(raw_body, header, secret)


async def handle_inbound_message(
    inbound: InboundMessage,
    *,
    directory: TenantDirectory,
    guard: DedupGuard,
    completion: CompletionService,
    dispatcher: InstagramService,
) -> Optional[Exchange]:
    """Run one messaging event through echo, dedup, completion and dispatch.

    Returns the exchange to record, or None when the event was ignored.
    """
    context = {"mid": inbound.external_id, "sender_id": inbound.sender_id}
    if inbound.is_echo:
        logger.debug("Ignoring echo message", extra={"context": context})
        return None
    # admit() is check-and-mark with no await in between
    if not guard.admit(inbound.external_id):
        logger.info("Duplicate message ignored", extra={"context": context})
        return None
    if not inbound.text:
        logger.info("Ignoring non-text message", extra={"context": context})
        return None

    tenant = await run_in_threadpool(directory.resolve_by_platform_recipient, inbound.recipient_id)
    system_prompt = render_system_prompt(tenant.config if tenant else None)

    started = time.monotonic()
    reply = await completion.reply(system_prompt, [{"role": "user", "content": inbound.text}])
    response_time_ms = (time.monotonic() - started) * 1000

    result = await dispatcher.send_message(inbound.sender_id, reply)
    if not result.ok:
        logger.warning(
            "Reply dispatch failed",
            extra={"context": {**context, "error": result.error, "error_code": result.error_code}},
        )

    if tenant is None:
        logger.warning("No tenant resolved, skipping analytics", extra={"context": context})
        return None
    return Exchange(
        tenant_id=tenant.id,
        channel=inbound.channel,
        user_id=inbound.sender_id,
        user_message=inbound.text,
        bot_reply=reply,
        timestamp=datetime.now(timezone.utc),
        response_time_ms=response_time_ms,
        message_count=1,
        lead_text=inbound.text,
    )


async def process_envelope(
    envelope: WebhookEnvelope,
    *,
    directory: TenantDirectory,
    guard: DedupGuard,
    completion: CompletionService,
    dispatcher: InstagramService,
) -> List[Exchange]:
    """Process every messaging event sequentially, in payload order.

    A failing event is logged and skipped; the exchanges of the other events
    are still returned.
    """
    exchanges: List[Exchange] = []
    for entry in envelope.entry:
        for event in entry.messaging:
            inbound = InboundMessage.from_messaging_event(event, page_id=entry.id)
            if inbound is None:
                continue
            try:
                exchange = await handle_inbound_message(
                    inbound,
                    directory=directory,
                    guard=guard,
                    completion=completion,
                    dispatcher=dispatcher,
                )
            except Exception as exc:
                logger.error(
                    "Webhook event processing failed",
                    exc_info=True,
                    extra={"context": {"mid": inbound.external_id, "error": str(exc)}},
                )
                continue
            if exchange is not None:
                exchanges.append(exchange)
    return exchanges


async def _process_in_background(
    envelope: WebhookEnvelope,
    session_factory: Callable[[], Session],
    **collaborators,
) -> None:
    exchanges = await process_envelope(envelope, **collaborators)
    for exchange in exchanges:
        await run_in_threadpool(record_exchange_task, session_factory, exchange)


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    directory: TenantDirectory = Depends(get_tenant_directory),
    guard: DedupGuard = Depends(get_dedup_guard),
    completion: CompletionService = Depends(get_completion_service),
    dispatcher: InstagramService = Depends(get_instagram_service),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    raw_body = await request.body()
    if not _check_signature(raw_body, request.headers.get(SIGNATURE_HEADER)):
        logger.warning("Invalid webhook signature")
        return JSONResponse({"error": "Invalid signature"}, status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        envelope = WebhookEnvelope.model_validate(json.loads(raw_body))
    except (ValueError, ValidationError) as exc:
        logger.warning(
            "Webhook payload is not valid",
            extra={"context": {"error": str(exc), "body_preview": raw_body[:200].decode("utf-8", "ignore")}},
        )
        return JSONResponse(
            {"error": "Invalid payload", "code": INVALID_PAYLOAD},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    collaborators = {
        "directory": directory,
        "guard": guard,
        "completion": completion,
        "dispatcher": dispatcher,
    }

    if settings.webhook_ack_mode == ACK_MODE_BACKGROUND:
        background_tasks.add_task(_process_in_background, envelope, session_factory, **collaborators)
        return PlainTextResponse("EVENT_RECEIVED")

    exchanges = await process_envelope(envelope, **collaborators)
    for exchange in exchanges:
        background_tasks.add_task(record_exchange_task, session_factory, exchange)
    return PlainTextResponse("EVENT_RECEIVED")
