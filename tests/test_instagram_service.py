import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import httpx

from relay_api.services.instagram_service import InstagramService
from relay_api.services.result import DISPATCH_ERROR


def _mock_client(mock_client_class, status_code=200, json_data=None):
    mock_client = MagicMock()
    mock_client_class.return_value.__aenter__.return_value = mock_client
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_response.text = "error body"
    mock_response.json.return_value = json_data or {}
    mock_client.post = AsyncMock(return_value=mock_response)
    return mock_client


class TestSendMessage:
    def test_missing_token(self):
        result = asyncio.run(InstagramService(access_token=None).send_message("user-1", "hi"))
        assert result.ok is False
        assert result.error_code == DISPATCH_ERROR

    def test_missing_recipient(self):
        result = asyncio.run(InstagramService(access_token="tok").send_message("", "hi"))
        assert result.ok is False

    @patch("relay_api.services.instagram_service.httpx.AsyncClient")
    def test_sends_payload(self, mock_client_class):
        mock_client = _mock_client(mock_client_class, json_data={"recipient_id": "user-1", "message_id": "m1"})

        result = asyncio.run(InstagramService(access_token="tok").send_message("user-1", "Hello"))

        assert result.ok is True
        assert result.value["message_id"] == "m1"
        kwargs = mock_client.post.call_args.kwargs
        assert kwargs["json"] == {"recipient": {"id": "user-1"}, "message": {"text": "Hello"}}
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    @patch("relay_api.services.instagram_service.alert_critical", new_callable=AsyncMock)
    @patch("relay_api.services.instagram_service.httpx.AsyncClient")
    def test_http_status_error(self, mock_client_class, mock_alert):
        _mock_client(mock_client_class, status_code=400)

        result = asyncio.run(InstagramService(access_token="tok").send_message("user-1", "Hello"))

        assert result.ok is False
        assert result.error == "http_400"
        mock_alert.assert_awaited_once()

    @patch("relay_api.services.instagram_service.alert_critical", new_callable=AsyncMock)
    @patch("relay_api.services.instagram_service.httpx.AsyncClient")
    def test_transport_error(self, mock_client_class, mock_alert):
        mock_client = _mock_client(mock_client_class)
        mock_client.post.side_effect = httpx.ConnectError("refused")

        result = asyncio.run(InstagramService(access_token="tok").send_message("user-1", "Hello"))

        assert result.ok is False
        assert result.error_code == DISPATCH_ERROR
        mock_alert.assert_awaited_once()
