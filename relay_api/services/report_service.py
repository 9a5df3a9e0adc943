from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from relay_api.logging_config import get_logger
from relay_api.models import Conversation, DailyAnalytics, HourlyActivity, Lead
from relay_api.services.analytics_service import ensure_utc, is_after_hours, to_local

logger = get_logger("report_service")

AVG_MINUTES_PER_CHAT = 3
HOURLY_STAFF_COST = 35
RECENT_LIMIT = 100
DEFAULT_REPORT_DAYS = 7


def local_today(now: Optional[datetime] = None) -> date:
    return to_local(now or datetime.now(timezone.utc)).date()


def default_report_range(now: Optional[datetime] = None) -> Tuple[date, date]:
    """Last seven local days, today included."""
    end = local_today(now)
    return end - timedelta(days=DEFAULT_REPORT_DAYS - 1), end


def get_peak_hour(hourly: Dict[int, int]) -> dict:
    """Busiest hour of the histogram; ties go to the earliest hour."""
    peak_hour, peak_count = None, 0
    for hour in sorted(hourly):
        if hourly[hour] > peak_count:
            peak_hour, peak_count = hour, hourly[hour]
    return {"hour": peak_hour, "count": peak_count}


def get_after_hours_stats(timestamps: Iterable[datetime]) -> dict:
    """Split conversations outside business hours into weekend and weekday-evening buckets."""
    after_hours = 0
    weekend = 0
    total = 0
    for timestamp in timestamps:
        total += 1
        local = to_local(timestamp)
        if local.weekday() >= 5:
            weekend += 1
        elif is_after_hours(local):
            after_hours += 1
    outside = after_hours + weekend
    return {
        "after_hours_count": after_hours,
        "weekend_count": weekend,
        "outside_business_hours": outside,
        "percentage": round(outside / total * 100) if total else 0,
    }


def calculate_roi(total_chats: int, total_leads: int) -> dict:
    minutes_saved = total_chats * AVG_MINUTES_PER_CHAT
    hours_saved = round(minutes_saved / 60, 1)
    return {
        "minutes_saved": minutes_saved,
        "hours_saved": hours_saved,
        "money_saved": round(hours_saved * HOURLY_STAFF_COST),
        "conversion_rate": round(total_leads / total_chats * 100) if total_chats else 0,
    }


def _weighted_response_time(rows: List[DailyAnalytics]) -> float:
    samples = sum(row.response_time_samples or 0 for row in rows)
    if not samples:
        return 0.0
    total = sum((row.avg_response_time_ms or 0.0) * (row.response_time_samples or 0) for row in rows)
    return round(total / samples, 1)


def serialize_daily(row: DailyAnalytics) -> dict:
    return {
        "date": row.date.isoformat(),
        "total_conversations": row.total_conversations,
        "after_hours_conversations": row.after_hours_conversations,
        "avg_response_time_ms": row.avg_response_time_ms,
        "avg_messages_per_conversation": row.avg_messages_per_conversation,
        "peak_hour": row.peak_hour,
        "channel_webchat": row.channel_webchat,
        "channel_instagram": row.channel_instagram,
        "leads_captured": row.leads_captured,
    }


def serialize_conversation(conversation: Conversation) -> dict:
    return {
        "id": str(conversation.id),
        "date": conversation.date.isoformat(),
        "channel": conversation.channel,
        "user_id": conversation.user_id,
        "user_message": conversation.user_message,
        "bot_reply": conversation.bot_reply,
        "created_at": ensure_utc(conversation.created_at).isoformat(),
        "lead_email": conversation.lead_email,
        "lead_phone": conversation.lead_phone,
    }


def serialize_lead(lead: Lead) -> dict:
    return {
        "id": str(lead.id),
        "date": lead.date.isoformat(),
        "conversation_id": str(lead.conversation_id) if lead.conversation_id else None,
        "channel": lead.channel,
        "user_id": lead.user_id,
        "email": lead.email,
        "phone": lead.phone,
        "created_at": ensure_utc(lead.created_at).isoformat(),
    }


def build_weekly_report(db: Session, client_id: str, start_date: date, end_date: date) -> dict:
    daily_rows = (
        db.query(DailyAnalytics)
        .filter(
            DailyAnalytics.client_id == client_id,
            DailyAnalytics.date >= start_date,
            DailyAnalytics.date <= end_date,
        )
        .order_by(DailyAnalytics.date)
        .all()
    )
    hourly_rows = (
        db.query(HourlyActivity)
        .filter(
            HourlyActivity.client_id == client_id,
            HourlyActivity.date >= start_date,
            HourlyActivity.date <= end_date,
        )
        .all()
    )
    hourly: Dict[int, int] = {}
    for row in hourly_rows:
        hourly[row.hour] = hourly.get(row.hour, 0) + row.count

    conversations = (
        db.query(Conversation)
        .filter(
            Conversation.client_id == client_id,
            Conversation.date >= start_date,
            Conversation.date <= end_date,
        )
        .order_by(Conversation.created_at.desc())
        .all()
    )
    leads = (
        db.query(Lead)
        .filter(Lead.client_id == client_id, Lead.date >= start_date, Lead.date <= end_date)
        .order_by(Lead.created_at.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    total_chats = sum(row.total_conversations for row in daily_rows)
    total_leads = sum(row.leads_captured for row in daily_rows)

    logger.info(
        "Weekly report built",
        extra={"context": {"client_id": client_id, "start": str(start_date), "end": str(end_date)}},
    )
    return {
        "client_id": client_id,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "total_conversations": total_chats,
        "total_leads": total_leads,
        "channel_breakdown": {
            "webchat": sum(row.channel_webchat for row in daily_rows),
            "instagram": sum(row.channel_instagram for row in daily_rows),
        },
        "hourly_breakdown": {str(hour): hourly[hour] for hour in sorted(hourly)},
        "peak_hour": get_peak_hour(hourly),
        "after_hours": get_after_hours_stats(c.created_at for c in conversations),
        "roi": calculate_roi(total_chats, total_leads),
        "avg_response_time_ms": _weighted_response_time(daily_rows),
        "daily": [serialize_daily(row) for row in daily_rows],
        "recent_conversations": [serialize_conversation(c) for c in conversations[:RECENT_LIMIT]],
        "recent_leads": [serialize_lead(lead) for lead in leads],
    }


def build_backup(db: Session, client_id: str, days: int = 30, now: Optional[datetime] = None) -> dict:
    """Export the trailing ``days`` local days of counters, conversations and leads."""
    now = ensure_utc(now or datetime.now(timezone.utc))
    end_date = local_today(now)
    start_date = end_date - timedelta(days=days - 1)

    daily_rows = (
        db.query(DailyAnalytics)
        .filter(DailyAnalytics.client_id == client_id, DailyAnalytics.date >= start_date)
        .order_by(DailyAnalytics.date)
        .all()
    )
    conversations = (
        db.query(Conversation)
        .filter(Conversation.client_id == client_id, Conversation.date >= start_date)
        .order_by(Conversation.created_at)
        .all()
    )
    leads = (
        db.query(Lead)
        .filter(Lead.client_id == client_id, Lead.date >= start_date)
        .order_by(Lead.created_at)
        .all()
    )

    logger.info(
        "Backup exported",
        extra={"context": {"client_id": client_id, "days": days, "conversations": len(conversations)}},
    )
    return {
        "summary": {
            "timestamp": now.isoformat(),
            "client_id": client_id,
            "total_conversations": len(conversations),
            "total_leads": len(leads),
            "days_included": len(daily_rows),
        },
        "backup": {
            "stats": {row.date.isoformat(): serialize_daily(row) for row in daily_rows},
            "conversations": [serialize_conversation(c) for c in conversations],
            "leads": [serialize_lead(lead) for lead in leads],
        },
    }
