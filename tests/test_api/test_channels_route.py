"""Tests for channel endpoints."""

from dataclasses import replace


class TestGetChannel:
    def test_found(self, client, mock_boards_repo, sample_channel):
        mock_boards_repo.get_channel.return_value = sample_channel

        response = client.get("/api/channels/chan-ig")

        assert response.status_code == 200
        assert response.json()["sourceType"] == "instagram"

    def test_missing(self, client):
        response = client.get("/api/channels/ghost")

        assert response.status_code == 404
        assert response.json() == {"detail": "Channel not found"}


class TestUpdateChannel:
    def test_set_handle(self, client, mock_boards_repo, sample_channel):
        mock_boards_repo.get_channel.return_value = replace(sample_channel, handle=None)
        mock_boards_repo.update_channel_handle.return_value = sample_channel

        response = client.patch("/api/channels/chan-ig", json={"handle": "  nike "})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "channel": {
                "id": "chan-ig",
                "boardId": "board-1",
                "sourceType": "instagram",
                "displayName": "Instagram",
                "position": 0,
                "handle": "nike",
                "isActive": True,
            },
        }
        mock_boards_repo.update_channel_handle.assert_awaited_once_with("chan-ig", "nike")
        mock_boards_repo.set_channel_active.assert_not_called()

    def test_clear_handle(self, client, mock_boards_repo, sample_channel):
        mock_boards_repo.get_channel.return_value = sample_channel
        mock_boards_repo.update_channel_handle.return_value = replace(sample_channel, handle=None)

        response = client.patch("/api/channels/chan-ig", json={"handle": None})

        assert response.json()["channel"]["handle"] is None
        mock_boards_repo.update_channel_handle.assert_awaited_once_with("chan-ig", None)

    def test_toggle_active(self, client, mock_boards_repo, sample_channel):
        mock_boards_repo.get_channel.side_effect = [
            sample_channel,
            replace(sample_channel, is_active=False),
        ]

        response = client.patch("/api/channels/chan-ig", json={"isActive": False})

        assert response.status_code == 200
        assert response.json()["channel"]["isActive"] is False
        mock_boards_repo.set_channel_active.assert_awaited_once_with("chan-ig", False)
        mock_boards_repo.update_channel_handle.assert_not_called()

    def test_empty_body(self, client, mock_boards_repo):
        response = client.patch("/api/channels/chan-ig", json={})

        assert response.status_code == 400
        assert response.json() == {"detail": "Provide handle and/or isActive"}
        mock_boards_repo.get_channel.assert_not_called()

    def test_missing_channel(self, client, mock_boards_repo):
        response = client.patch("/api/channels/ghost", json={"handle": "nike"})

        assert response.status_code == 404
        mock_boards_repo.update_channel_handle.assert_not_called()
