"""Operator alerts delivered to a Telegram chat."""

from typing import Optional

import httpx

from relay_api.config import settings
from relay_api.logging_config import get_logger

logger = get_logger("alert_service")

TELEGRAM_SEND_URL = "https://api.telegram.org/bot{token}/sendMessage"
LEVEL_MARKERS = {"INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌", "CRITICAL": "🔥"}


def format_alert(level: str, message: str, context: Optional[dict] = None) -> str:
    text = f"{LEVEL_MARKERS.get(level, '📢')} *{level}* relay-api\n\n{message}"
    if context:
        context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
        text += f"\n\n```\n{context_str}\n```"
    return text


async def send_alert(level: str, message: str, context: Optional[dict] = None) -> bool:
    """Send an alert. Returns True only when Telegram accepted it.

    Unconfigured alerting is logged and treated as a soft failure.
    """
    token = settings.alert_bot_token
    chat_id = settings.alert_chat_id
    if not token or not chat_id:
        logger.warning(f"Alert not configured: {level} - {message}", extra={"context": context or {}})
        return False

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.post(
                TELEGRAM_SEND_URL.format(token=token),
                json={"chat_id": chat_id, "text": format_alert(level, message, context), "parse_mode": "Markdown"},
            )
            return response.status_code == 200
    except Exception as e:
        logger.error(f"Failed to send alert: {e}")
        return False


async def alert_error(message: str, context: Optional[dict] = None) -> bool:
    return await send_alert("ERROR", message, context)


async def alert_critical(message: str, context: Optional[dict] = None) -> bool:
    return await send_alert("CRITICAL", message, context)


async def alert_warning(message: str, context: Optional[dict] = None) -> bool:
    return await send_alert("WARNING", message, context)
