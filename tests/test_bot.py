import asyncio
import threading
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import requests

from earnhub_bot import bot
from earnhub_bot.bot import (
    BackendClient,
    button_callback,
    callback_data,
    error_detail,
    format_item,
    format_rupees,
    parse_callback,
)


def make_client():
    session = MagicMock()
    session.headers = {}
    session.get.return_value.json.return_value = []
    session.post.return_value.json.return_value = {"status": "approved"}
    return BackendClient("http://backend:5000/", "secret", timeout=3, session=session), session


class TestCallbackData:
    def test_round_trip(self) -> None:
        data = callback_data("approve", "withdraw", "abc-123")
        assert parse_callback(data) == ("approve", "withdraw", "abc-123")

    def test_id_may_contain_colon(self) -> None:
        assert parse_callback("reject:task:a:b") == ("reject", "task", "a:b")

    @pytest.mark.parametrize("data", ["", "approve", "approve:verify", "delete:verify:1", "approve:nope:1", "approve:bind:"])
    def test_malformed(self, data: str) -> None:
        with pytest.raises(ValueError):
            parse_callback(data)


class TestFormatting:
    def test_rupees(self) -> None:
        assert format_rupees(5000) == "₹50.00"
        assert format_rupees(1234) == "₹12.34"

    def test_verification_item(self) -> None:
        text = format_item("verify", {"id": "v1", "instagramHandle": "alice"})
        assert "@alice" in text
        assert "v1" in text

    def test_binding_item_shows_code(self) -> None:
        text = format_item("bind", {"id": "b1", "userId": "u1", "username": "alice", "accessCode": "X1"})
        assert "X1" in text
        assert "password" not in text.lower()

    def test_withdrawal_item(self) -> None:
        text = format_item("withdraw", {"id": "w1", "userId": "u1", "amount": 5000, "type": "amazon"})
        assert "₹50.00" in text
        assert "amazon" in text


class TestBackendClient:
    def test_sends_admin_header(self) -> None:
        _, session = make_client()
        assert session.headers["X-Admin-Password"] == "secret"

    def test_pending_uses_listing_path(self) -> None:
        client, session = make_client()
        assert client.pending("task") == []
        session.get.assert_called_once_with("http://backend:5000/api/admin/task-submissions", timeout=3)

    def test_review_posts_action(self) -> None:
        client, session = make_client()
        assert client.review("withdraw", "w1", "approve") == {"status": "approved"}
        session.post.assert_called_once_with(
            "http://backend:5000/api/admin/withdrawals/w1", json={"action": "approve"}, timeout=3,
        )

    def test_review_rejects_unknown_action(self) -> None:
        client, session = make_client()
        with pytest.raises(ValueError):
            client.review("verify", "v1", "delete")
        session.post.assert_not_called()

    def test_http_errors_propagate(self) -> None:
        client, session = make_client()
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("boom")
        with pytest.raises(requests.HTTPError):
            client.stats()


class TestErrorDetail:
    def test_reads_detail(self) -> None:
        response = MagicMock()
        response.json.return_value = {"detail": "WithdrawalRequest w1 is already approved"}
        assert error_detail(requests.HTTPError(response=response)) == "WithdrawalRequest w1 is already approved"

    def test_non_json_body(self) -> None:
        response = MagicMock()
        response.json.side_effect = ValueError("no json")
        assert error_detail(requests.HTTPError(response=response)) == "failed"

    def test_no_response(self) -> None:
        assert error_detail(requests.HTTPError("boom")) == "failed"


class ThreadRecordingClient:
    def __init__(self, result=None, error=None):
        self.result = result or {"status": "approved"}
        self.error = error
        self.calls = []

    def review(self, queue, request_id, action):
        self.calls.append((queue, request_id, action, threading.get_ident()))
        if self.error:
            raise self.error
        return self.result


def callback_update(data: str, user_id: int = 42):
    query = SimpleNamespace(
        data=data,
        from_user=SimpleNamespace(id=user_id),
        answer=AsyncMock(),
        edit_message_text=AsyncMock(),
    )
    return SimpleNamespace(callback_query=query), query


class TestButtonCallback:
    @pytest.fixture(autouse=True)
    def admin_id(self, monkeypatch) -> None:
        monkeypatch.setattr(bot.config, "TELEGRAM_ADMIN_ID", 42)

    def run(self, update, client) -> int:
        context = SimpleNamespace(bot_data={"client": client})

        async def handle() -> int:
            await button_callback(update, context)
            return threading.get_ident()

        return asyncio.run(handle())

    def test_review_runs_off_the_event_loop(self) -> None:
        client = ThreadRecordingClient()
        update, query = callback_update(callback_data("approve", "withdraw", "w1"))
        loop_thread = self.run(update, client)

        queue, request_id, action, worker_thread = client.calls[0]
        assert (queue, request_id, action) == ("withdraw", "w1", "approve")
        assert worker_thread != loop_thread
        query.edit_message_text.assert_awaited_once_with("✅ Withdrawal w1 approved")

    def test_backend_conflict_is_reported(self) -> None:
        response = MagicMock()
        response.json.return_value = {"detail": "WithdrawalRequest w1 is already approved"}
        client = ThreadRecordingClient(error=requests.HTTPError(response=response))
        update, query = callback_update(callback_data("approve", "withdraw", "w1"))
        self.run(update, client)

        text = query.edit_message_text.await_args.args[0]
        assert "already approved" in text

    def test_non_admin_is_refused(self) -> None:
        client = ThreadRecordingClient()
        update, query = callback_update(callback_data("approve", "verify", "v1"), user_id=7)
        self.run(update, client)

        assert client.calls == []
        query.answer.assert_awaited_once()
        query.edit_message_text.assert_not_awaited()
