"""FastAPI dependencies shared by the routers.

Long-lived collaborators (dedup guard, completion service, dispatcher) are
built once at startup and kept on ``app.state``; tests replace them through
``app.dependency_overrides``.
"""

from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from relay_api.config import settings
from relay_api.database import SessionLocal
from relay_api.services.completion_service import CompletionService
from relay_api.services.dedup_guard import DedupGuard
from relay_api.services.instagram_service import InstagramService
from relay_api.services.tenant_directory import TenantDirectory


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_tenant_directory(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> TenantDirectory:
    return TenantDirectory(
        session_factory,
        fallback_enabled=settings.tenant_fallback_enabled,
        default_tenant_id=settings.default_tenant_id,
    )


def get_dedup_guard(request: Request) -> DedupGuard:
    return request.app.state.dedup_guard


def get_completion_service(request: Request) -> CompletionService:
    return request.app.state.completion_service


def get_instagram_service(request: Request) -> InstagramService:
    return request.app.state.instagram_service
