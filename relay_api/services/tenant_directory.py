from typing import Callable, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from relay_api.logging_config import get_logger
from relay_api.models import Client
from relay_api.schemas.chatbot_config import ChatbotConfig
from relay_api.schemas.tenant import TenantRecord

logger = get_logger("tenant_directory")


def _to_record(client: Client) -> TenantRecord:
    config = None
    if client.config:
        try:
            config = ChatbotConfig.model_validate(client.config)
        except ValidationError as exc:
            logger.warning(
                "Invalid chatbot config, using generic prompt",
                extra={"context": {"client_id": client.id, "error": str(exc)}},
            )
    return TenantRecord(
        id=client.id,
        name=client.name,
        status=client.status,
        domain=client.domain,
        platform_recipient_ids=[str(rid) for rid in (client.platform_recipient_ids or [])],
        config=config,
    )


class TenantDirectory:
    """Resolve inbound requests to a tenant.

    Every lookup opens its own session and re-reads the ``clients`` table, so
    configuration edits apply to the next request without a deploy. When the
    store is unreachable the lookup returns None and callers fall back to the
    generic prompt.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        fallback_enabled: bool = True,
        default_tenant_id: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.fallback_enabled = fallback_enabled
        self.default_tenant_id = default_tenant_id

    def _load_active(self) -> Optional[List[TenantRecord]]:
        db = self.session_factory()
        try:
            clients = (
                db.query(Client)
                .filter(Client.status == "active")
                .order_by(Client.created_at, Client.id)
                .all()
            )
            return [_to_record(client) for client in clients]
        except SQLAlchemyError as exc:
            logger.error("Tenant store unavailable", extra={"context": {"error": str(exc)}})
            return None
        finally:
            db.close()

    def _fallback(self, tenants: List[TenantRecord], reason: str) -> Optional[TenantRecord]:
        if not self.fallback_enabled or not tenants:
            logger.info("No tenant matched", extra={"context": {"reason": reason}})
            return None
        if self.default_tenant_id:
            for tenant in tenants:
                if tenant.id == self.default_tenant_id:
                    return tenant
        logger.info(
            "No tenant matched, falling back to default",
            extra={"context": {"reason": reason, "tenant_id": tenants[0].id}},
        )
        return tenants[0]

    def resolve_by_origin(self, origin: Optional[str]) -> Optional[TenantRecord]:
        tenants = self._load_active()
        if tenants is None:
            return None
        if origin:
            for tenant in tenants:
                if tenant.domain and tenant.domain in origin:
                    return tenant
        return self._fallback(tenants, f"origin={origin}")

    def resolve_by_platform_recipient(self, recipient_id: Optional[str]) -> Optional[TenantRecord]:
        tenants = self._load_active()
        if tenants is None:
            return None
        if recipient_id:
            for tenant in tenants:
                if recipient_id in tenant.platform_recipient_ids:
                    return tenant
        return self._fallback(tenants, f"recipient_id={recipient_id}")

    def get_by_id(self, tenant_id: Optional[str]) -> Optional[TenantRecord]:
        """Exact active-tenant lookup without fallback."""
        if not tenant_id:
            return None
        tenants = self._load_active()
        if not tenants:
            return None
        for tenant in tenants:
            if tenant.id == tenant_id:
                return tenant
        return None
