from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from agent_relay.services.freshchat_service import FreshchatService, user_display_name, user_property

USER = {
    "id": "u1",
    "first_name": "Ada",
    "last_name": None,
    "properties": [{"name": "cf_user_status", "value": "Subscribed"}, {"name": "cf_student_id", "value": 17}],
}


def _async_client(mock_client_class, response=None, error=None):
    mock_client = MagicMock()
    mock_client.get = AsyncMock(return_value=response, side_effect=error)
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=False)
    return mock_client


class TestUserHelpers:
    def test_user_property(self):
        assert user_property(USER, "cf_user_status") == "Subscribed"
        assert user_property(USER, "cf_student_id") == "17"
        assert user_property(USER, "missing") is None
        assert user_property(None, "cf_user_status") is None

    def test_display_name(self):
        assert user_display_name(USER) == "Ada"
        assert user_display_name(None) == ""


class TestGetUser:
    @pytest.mark.asyncio
    @patch("agent_relay.services.freshchat_service.httpx.AsyncClient")
    async def test_returns_user(self, mock_client_class):
        mock_client = _async_client(mock_client_class, Mock(status_code=200, json=Mock(return_value=USER)))

        user = await FreshchatService("key", "acme.freshchat.com").get_user("u1")

        assert user == USER
        url = mock_client.get.await_args.args[0]
        assert url == "https://acme.freshchat.com/v2/users/u1"
        assert mock_client.get.await_args.kwargs["headers"]["Authorization"] == "Bearer key"

    @pytest.mark.asyncio
    @patch("agent_relay.services.freshchat_service.httpx.AsyncClient")
    async def test_not_found_returns_none(self, mock_client_class):
        _async_client(mock_client_class, Mock(status_code=404))

        assert await FreshchatService("key", "acme.freshchat.com").get_user("u1") is None

    @pytest.mark.asyncio
    @patch("agent_relay.services.freshchat_service.httpx.AsyncClient")
    async def test_transport_error_returns_none(self, mock_client_class):
        _async_client(mock_client_class, error=ConnectionError("timeout"))

        assert await FreshchatService("key", "acme.freshchat.com").get_user("u1") is None

    @pytest.mark.asyncio
    async def test_missing_user_id(self):
        assert await FreshchatService("key", "acme.freshchat.com").get_user(None) is None
