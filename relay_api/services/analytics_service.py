"""Per-tenant conversation logs, leads and daily counters.

Counters are written with ``INSERT ... ON CONFLICT DO UPDATE`` whose SET
clause does the merge arithmetic against the stored row, so concurrent
exchanges for the same (tenant, day) never lose an update. Nothing here
may fail the user-facing reply: the ``*_task`` entry points swallow and log
every error.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy import Numeric, cast, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from relay_api.config import settings
from relay_api.logging_config import get_logger
from relay_api.models import Conversation, DailyAnalytics, EngagementEvent, HourlyActivity, Lead
from relay_api.schemas.engagement import ENGAGEMENT_EVENT_TYPES, EngagementRequest
from relay_api.services.lead_extractor import LeadInfo, extract_lead_info

logger = get_logger("analytics_service")

PEAK_HOUR_LAST_WRITE = "last_write"
PEAK_HOUR_HISTOGRAM = "histogram"


@dataclass
class Exchange:
    """One completed user message / bot reply pair."""

    tenant_id: str
    channel: str
    user_id: str
    user_message: str
    bot_reply: str
    timestamp: datetime
    response_time_ms: Optional[float] = None
    message_count: Optional[int] = 1
    lead_text: Optional[str] = None


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(timestamp: datetime, offset_hours: Optional[int] = None) -> datetime:
    """Shift a UTC timestamp into business-local wall time (naive)."""
    if offset_hours is None:
        offset_hours = settings.business_utc_offset_hours
    return ensure_utc(timestamp).replace(tzinfo=None) + timedelta(hours=offset_hours)


def is_after_hours(local_time: datetime, start: Optional[int] = None, end: Optional[int] = None) -> bool:
    start = settings.business_hours_start if start is None else start
    end = settings.business_hours_end if end is None else end
    return local_time.hour < start or local_time.hour >= end


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"merge-upsert not supported on {dialect}")


def _empty_day(tenant_id: str, day: date) -> dict:
    return {
        "client_id": tenant_id,
        "date": day,
        "total_conversations": 0,
        "after_hours_conversations": 0,
        "avg_response_time_ms": 0.0,
        "response_time_samples": 0,
        "avg_messages_per_conversation": 0.0,
        "peak_hour": None,
        "channel_webchat": 0,
        "channel_instagram": 0,
        "leads_captured": 0,
    }


def save_conversation(db: Session, exchange: Exchange) -> Conversation:
    created_at = ensure_utc(exchange.timestamp)
    conversation = Conversation(
        client_id=exchange.tenant_id,
        channel=exchange.channel,
        user_id=exchange.user_id,
        user_message=exchange.user_message or "",
        bot_reply=exchange.bot_reply or "",
        created_at=created_at,
        date=to_local(created_at).date(),
    )
    db.add(conversation)
    db.flush()
    return conversation


def _bump_hourly(db: Session, tenant_id: str, day: date, hour: int) -> None:
    table = HourlyActivity.__table__
    insert = _dialect_insert(db)
    stmt = insert(table).values(client_id=tenant_id, date=day, hour=hour, count=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=["client_id", "date", "hour"],
        set_={"count": table.c.count + 1},
    )
    db.execute(stmt)


def _refresh_peak_from_histogram(db: Session, tenant_id: str, day: date) -> None:
    hourly = HourlyActivity.__table__
    top_hour = (
        select(hourly.c.hour)
        .where(hourly.c.client_id == tenant_id, hourly.c.date == day)
        .order_by(hourly.c.count.desc(), hourly.c.hour.asc())
        .limit(1)
        .scalar_subquery()
    )
    daily = DailyAnalytics.__table__
    db.execute(
        update(daily)
        .where(daily.c.client_id == tenant_id, daily.c.date == day)
        .values(peak_hour=top_hour)
    )


def record_exchange(
    db: Session,
    tenant_id: str,
    channel: str,
    response_time_ms: Optional[float],
    message_count: Optional[int],
    timestamp: datetime,
    *,
    peak_hour_mode: Optional[str] = None,
) -> None:
    """Merge one exchange into the tenant's daily record.

    Running averages are weighted: ``(old_avg * old_n + sample) / (old_n + 1)``.
    Response time uses its own sample count so exchanges without a timing do
    not dilute it; messages-per-conversation is weighted by the conversation
    count and rounded to one decimal.
    """
    peak_hour_mode = peak_hour_mode or settings.peak_hour_mode
    local = to_local(timestamp)
    day, hour = local.date(), local.hour
    after_hours = 1 if is_after_hours(local) else 0
    webchat = 1 if channel == "webchat" else 0
    instagram = 1 if channel == "instagram" else 0

    values = _empty_day(tenant_id, day)
    values.update(
        total_conversations=1,
        after_hours_conversations=after_hours,
        peak_hour=hour,
        channel_webchat=webchat,
        channel_instagram=instagram,
    )
    if response_time_ms is not None:
        values.update(avg_response_time_ms=float(response_time_ms), response_time_samples=1)
    if message_count is not None:
        values["avg_messages_per_conversation"] = round(float(message_count), 1)

    c = DailyAnalytics.__table__.c
    merge = {
        "total_conversations": c.total_conversations + 1,
        "after_hours_conversations": c.after_hours_conversations + after_hours,
        "channel_webchat": c.channel_webchat + webchat,
        "channel_instagram": c.channel_instagram + instagram,
        "peak_hour": hour,
    }
    if response_time_ms is not None:
        merge["avg_response_time_ms"] = (
            c.avg_response_time_ms * c.response_time_samples + float(response_time_ms)
        ) / (c.response_time_samples + 1)
        merge["response_time_samples"] = c.response_time_samples + 1
    if message_count is not None:
        weighted = (c.avg_messages_per_conversation * c.total_conversations + float(message_count)) / (
            c.total_conversations + 1
        )
        merge["avg_messages_per_conversation"] = func.round(cast(weighted, Numeric), 1)

    insert = _dialect_insert(db)
    stmt = insert(DailyAnalytics.__table__).values(**values)
    stmt = stmt.on_conflict_do_update(index_elements=["client_id", "date"], set_=merge)
    db.execute(stmt)

    _bump_hourly(db, tenant_id, day, hour)
    if peak_hour_mode == PEAK_HOUR_HISTOGRAM:
        _refresh_peak_from_histogram(db, tenant_id, day)


def _increment_leads(db: Session, tenant_id: str, day: date) -> None:
    values = _empty_day(tenant_id, day)
    values["leads_captured"] = 1
    c = DailyAnalytics.__table__.c
    insert = _dialect_insert(db)
    stmt = insert(DailyAnalytics.__table__).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["client_id", "date"],
        set_={"leads_captured": c.leads_captured + 1},
    )
    db.execute(stmt)


def record_lead(
    db: Session,
    tenant_id: str,
    channel: str,
    lead: LeadInfo,
    *,
    user_id: Optional[str] = None,
    conversation_id: Optional[UUID] = None,
    timestamp: Optional[datetime] = None,
) -> Lead:
    """Store a lead and count it for the day.

    Without an explicit ``conversation_id`` the lead attaches to the tenant's
    most recently created conversation, which may belong to another exchange
    when exchanges interleave.
    """
    created_at = ensure_utc(timestamp or datetime.now(timezone.utc))

    conversation = None
    if conversation_id is not None:
        conversation = db.get(Conversation, conversation_id)
    if conversation is None:
        conversation = (
            db.query(Conversation)
            .filter(Conversation.client_id == tenant_id)
            .order_by(Conversation.created_at.desc())
            .first()
        )
    if conversation is not None:
        conversation.lead_email = lead.email
        conversation.lead_phone = lead.phone

    record = Lead(
        client_id=tenant_id,
        conversation_id=conversation.id if conversation is not None else None,
        channel=channel,
        user_id=user_id,
        email=lead.email,
        phone=lead.phone,
        created_at=created_at,
        date=to_local(created_at).date(),
    )
    db.add(record)
    _increment_leads(db, tenant_id, record.date)
    db.flush()
    return record


def record_engagement(db: Session, tenant_id: Optional[str], event: EngagementRequest) -> Optional[EngagementEvent]:
    if event.event_type not in ENGAGEMENT_EVENT_TYPES:
        logger.info("Ignoring unknown engagement event", extra={"context": {"event_type": event.event_type}})
        return None
    record = EngagementEvent(
        client_id=tenant_id,
        event_type=event.event_type,
        session_id=event.session_id,
        page_url=event.page_url,
        payload=event.extra_fields(),
        created_at=datetime.now(timezone.utc),
    )
    db.add(record)
    db.flush()
    return record


def record_exchange_task(session_factory: Callable[[], Session], exchange: Exchange) -> None:
    """Background entry point: conversation log, daily counters, lead."""
    db = session_factory()
    try:
        conversation_id = None
        try:
            conversation = save_conversation(db, exchange)
            db.commit()
            conversation_id = conversation.id
        except Exception:
            db.rollback()
            logger.error(
                "Failed to save conversation",
                exc_info=True,
                extra={"context": {"tenant_id": exchange.tenant_id, "channel": exchange.channel}},
            )

        try:
            record_exchange(
                db,
                exchange.tenant_id,
                exchange.channel,
                exchange.response_time_ms,
                exchange.message_count,
                exchange.timestamp,
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.error(
                "Failed to record analytics",
                exc_info=True,
                extra={"context": {"tenant_id": exchange.tenant_id, "channel": exchange.channel}},
            )

        lead = extract_lead_info(exchange.lead_text)
        if lead is None:
            return
        try:
            record_lead(
                db,
                exchange.tenant_id,
                exchange.channel,
                lead,
                user_id=exchange.user_id,
                conversation_id=conversation_id,
                timestamp=exchange.timestamp,
            )
            db.commit()
            logger.info(
                "Lead captured",
                extra={"context": {"tenant_id": exchange.tenant_id, "channel": exchange.channel}},
            )
        except Exception:
            db.rollback()
            logger.error(
                "Failed to save lead",
                exc_info=True,
                extra={"context": {"tenant_id": exchange.tenant_id}},
            )
    finally:
        db.close()


def record_engagement_task(
    session_factory: Callable[[], Session],
    tenant_id: Optional[str],
    event: EngagementRequest,
) -> None:
    db = session_factory()
    try:
        record_engagement(db, tenant_id, event)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(
            "Failed to record engagement event",
            exc_info=True,
            extra={"context": {"tenant_id": tenant_id, "event_type": event.event_type}},
        )
    finally:
        db.close()
