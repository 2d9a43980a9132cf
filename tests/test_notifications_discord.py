from unittest.mock import MagicMock, patch

import httpx

from giftradar.notifications.base import AnnouncementRef
from giftradar.notifications.discord import DiscordClient


def _settings(token="bot-token"):
    return MagicMock(discord_bot_token=token, discord_api_base="https://discord.com/api/v10")


def _mock_client(mock_client_cls):
    mock_client = MagicMock()
    mock_client.__enter__ = MagicMock(return_value=mock_client)
    mock_client.__exit__ = MagicMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


def _json_response(payload):
    response = MagicMock()
    response.raise_for_status = MagicMock()
    response.json.return_value = payload
    return response


def _message(message_id, author_id, title):
    return {
        "id": message_id,
        "author": {"id": author_id},
        "embeds": [{"title": title}] if title is not None else [],
    }


class TestDiscordClient:
    @patch("giftradar.notifications.discord.get_settings")
    def test_is_configured_true(self, mock_settings):
        mock_settings.return_value = _settings()
        assert DiscordClient.is_configured() is True

    @patch("giftradar.notifications.discord.get_settings")
    def test_is_configured_false(self, mock_settings):
        mock_settings.return_value = _settings(token="")
        assert DiscordClient.is_configured() is False

    @patch("giftradar.notifications.discord.get_settings")
    def test_announce_success(self, mock_settings):
        mock_settings.return_value = _settings()
        client = DiscordClient()
        embed = {"title": "Promotional Code: KS1", "color": 0x00FF00}

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_client.post.return_value = _json_response({})

            result = client.announce("123", embed)

        assert result is True
        call_args = mock_client.post.call_args
        assert call_args.args[0] == "/channels/123/messages"
        assert call_args.kwargs["json"] == {"embeds": [embed]}
        headers = mock_client_cls.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bot bot-token"

    @patch("giftradar.notifications.discord.get_settings")
    def test_announce_http_error(self, mock_settings):
        mock_settings.return_value = _settings()
        client = DiscordClient()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_response = MagicMock()
            mock_response.status_code = 403
            mock_response.text = "Missing Permissions"
            mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
                "Forbidden", request=MagicMock(), response=mock_response
            )
            mock_client.post.return_value = mock_response

            result = client.announce("123", {"title": "t"})

        assert result is False

    @patch("giftradar.notifications.discord.get_settings")
    def test_announce_request_error(self, mock_settings):
        mock_settings.return_value = _settings()
        client = DiscordClient()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_client.post.side_effect = httpx.RequestError("Timeout")

            result = client.announce("123", {"title": "t"})

        assert result is False

    @patch("giftradar.notifications.discord.get_settings")
    def test_retract(self, mock_settings):
        mock_settings.return_value = _settings()
        client = DiscordClient()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_client.delete.return_value = _json_response({})

            result = client.retract(AnnouncementRef(channel_id="c1", message_id="m9"))

        assert result is True
        mock_client.delete.assert_called_once_with("/channels/c1/messages/m9")

    @patch("giftradar.notifications.discord.get_settings")
    def test_retract_request_error(self, mock_settings):
        mock_settings.return_value = _settings()
        client = DiscordClient()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_client.delete.side_effect = httpx.RequestError("Timeout")

            assert client.retract(AnnouncementRef("c1", "m9")) is False

    @patch("giftradar.notifications.discord.get_settings")
    def test_list_recent_keeps_own_code_announcements(self, mock_settings):
        mock_settings.return_value = _settings()
        client = DiscordClient()
        messages = [
            _message("1", "bot", "Promotional Code: KS1"),
            _message("2", "someone", "Promotional Code: KS2"),
            _message("3", "bot", "Bear Trap Reminder"),
            _message("4", "bot", None),
            _message("5", "bot", "Promotional Code: KS5"),
        ]

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_client.get.side_effect = [
                _json_response({"id": "bot"}),
                _json_response(messages),
            ]

            announcements = client.list_recent("c1", limit=50)

        assert [(a.ref.message_id, a.code_id) for a in announcements] == [
            ("1", "KS1"),
            ("5", "KS5"),
        ]
        assert mock_client.get.call_args.kwargs["params"] == {"limit": 50}

    @patch("giftradar.notifications.discord.get_settings")
    def test_list_recent_without_bot_identity(self, mock_settings):
        mock_settings.return_value = _settings()
        client = DiscordClient()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_client.get.side_effect = httpx.RequestError("Timeout")

            assert client.list_recent("c1") == []
