from typing import Optional

import httpx

from relay_api.logging_config import get_logger
from relay_api.services.alert_service import alert_critical
from relay_api.services.result import DISPATCH_ERROR, Result

logger = get_logger("instagram_service")


class InstagramService:
    """Delivers text replies through the Instagram messaging send API."""

    def __init__(
        self,
        access_token: Optional[str],
        api_url: str = "https://graph.instagram.com/v21.0/me/messages",
        timeout_seconds: float = 30.0,
    ):
        self.access_token = access_token
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds

    async def send_message(self, recipient_id: str, text: str) -> Result[dict]:
        if not self.access_token:
            logger.error("Instagram access token is missing (INSTAGRAM_ACCESS_TOKEN not set)")
            return Result.failure("missing_access_token", DISPATCH_ERROR)
        if not recipient_id or not text:
            logger.warning(f"send_message: missing recipient_id={recipient_id} or text")
            return Result.failure("missing_recipient_or_text", DISPATCH_ERROR)

        payload = {"recipient": {"id": recipient_id}, "message": {"text": text}}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    self.api_url,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"Error sending Instagram message: {e}")
            await alert_critical("Instagram send failed", {"recipient_id": recipient_id, "error": str(e)})
            return Result.failure(str(e), DISPATCH_ERROR)

        logger.info(
            "Instagram response",
            extra={"context": {"status": response.status_code, "recipient_id": recipient_id}},
        )
        if response.status_code != 200:
            logger.error(f"Instagram API error: {response.status_code} {response.text[:200]}")
            await alert_critical(
                "Instagram send failed",
                {"recipient_id": recipient_id, "status": response.status_code},
            )
            return Result.failure(f"http_{response.status_code}", DISPATCH_ERROR)

        try:
            data = response.json()
        except ValueError:
            data = {}
        return Result.success(data)
