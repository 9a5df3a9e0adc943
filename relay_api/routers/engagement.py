"""Widget engagement telemetry. Always acknowledges with ``{"ok": true}``."""

from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from relay_api.deps import get_session_factory, get_tenant_directory
from relay_api.logging_config import get_logger
from relay_api.routers.chat import cors_headers, resolve_tenant
from relay_api.schemas.engagement import EngagementRequest, EngagementResponse
from relay_api.services.analytics_service import record_engagement_task
from relay_api.services.tenant_directory import TenantDirectory

logger = get_logger("engagement")

router = APIRouter(prefix="/api")


def _record(
    directory: TenantDirectory,
    session_factory: Callable[[], Session],
    origin: Optional[str],
    event: EngagementRequest,
) -> None:
    tenant = resolve_tenant(directory, event.client_id, origin)
    record_engagement_task(session_factory, tenant.id if tenant else None, event)


@router.options("/engagement")
async def engagement_preflight(request: Request, directory: TenantDirectory = Depends(get_tenant_directory)):
    origin = request.headers.get("origin")
    tenant = await run_in_threadpool(directory.resolve_by_origin, origin)
    return JSONResponse(EngagementResponse().model_dump(), headers=cors_headers(origin, tenant))


@router.post("/engagement")
async def engagement(
    request: Request,
    background_tasks: BackgroundTasks,
    directory: TenantDirectory = Depends(get_tenant_directory),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    origin = request.headers.get("origin")
    headers = cors_headers(origin, None)
    try:
        payload = await request.json()
        event = EngagementRequest.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        logger.info("Ignoring malformed engagement event", extra={"context": {"error": str(exc)[:200]}})
        return JSONResponse(EngagementResponse().model_dump(), headers=headers)

    if event.session_id is None:
        event.session_id = request.headers.get("X-Session-Id")
    background_tasks.add_task(_record, directory, session_factory, origin, event)
    return JSONResponse(EngagementResponse().model_dump(), headers=headers)
