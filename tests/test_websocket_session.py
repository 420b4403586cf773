"""Tests for the WebSocket session hub."""

import asyncio
from datetime import date

import pytest
from fastapi import FastAPI, WebSocket
from fastapi.testclient import TestClient

from learning_league.api.websocket import SessionConnection, handle_session_websocket
from learning_league.clock import FixedClock
from learning_league.models.user import Student
from learning_league.storage.users import JsonUserRepository
from learning_league.store.registry import SessionRegistry

THURSDAY = date(2026, 10, 22)


def _log_out(ws):
    ws.send_json({"type": "logout"})
    assert ws.receive_json() == {"type": "session_state", "status": "logged_out"}


@pytest.fixture
def registry(tmp_path):
    registry = SessionRegistry(JsonUserRepository(tmp_path / "users"), clock=FixedClock(THURSDAY))
    registry.provision(Student(id="ada", name="Ada", gems=20))
    return registry


@pytest.fixture
def client(registry):
    app = FastAPI()

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await handle_session_websocket(websocket, registry)

    with TestClient(app) as c:
        yield c


class TestSessionWebsocket:
    def test_start_session_pushes_state(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "start_session", "user_id": "ada"})
            msg = ws.receive_json()
            assert msg["type"] == "user_state"
            assert msg["user"]["login_streak"] == 1
            assert msg["user"]["penalty_box"]["is_active"] is True
            assert msg["restricted"] is True
            _log_out(ws)

    def test_command_produces_new_state(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "start_session", "user_id": "ada"})
            ws.receive_json()
            ws.send_json({
                "type": "command",
                "command": {"type": "COMPLETE_LESSON", "lesson_id": "l1", "xp": 15, "gems": 5},
            })
            msg = ws.receive_json()
            assert msg["type"] == "user_state"
            assert msg["user"]["xp"] == 15
            assert msg["user"]["gems"] == 25
            assert msg["restricted"] is False
            _log_out(ws)

    def test_rejected_command_reports_error(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "start_session", "user_id": "ada"})
            ws.receive_json()
            ws.send_json({
                "type": "command",
                "command": {"type": "PURCHASE_ITEM", "item_id": "avatar-dragon", "price": 200},
            })
            msg = ws.receive_json()
            assert msg == {
                "type": "error",
                "error": "InsufficientFunds",
                "detail": "Price 200 exceeds balance 20",
            }
            _log_out(ws)

    def test_invalid_command_payload(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "start_session", "user_id": "ada"})
            ws.receive_json()
            ws.send_json({"type": "command", "command": {"type": "FLY"}})
            msg = ws.receive_json()
            assert msg["type"] == "error"
            assert msg["error"] == "InvalidCommand"
            _log_out(ws)

    def test_command_before_session(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "command", "command": {"type": "RECORD_LOGIN"}})
            assert ws.receive_json()["error"] == "NoSession"

    def test_unknown_user(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "start_session", "user_id": "ghost"})
            msg = ws.receive_json()
            assert msg["type"] == "error"
            assert msg["error"] == "NotFound"

    def test_logout(self, client, registry):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "start_session", "user_id": "ada"})
            ws.receive_json()
            ws.send_json({"type": "logout"})
            assert ws.receive_json() == {"type": "session_state", "status": "logged_out"}
        assert registry.get("ada").session_active is False


class _ClosedSocket:
    """A browser that has gone away: sends never complete."""

    async def send_json(self, data):
        await asyncio.Event().wait()


class TestSessionConnection:
    async def test_stop_after_disconnect_saves_without_sending(self, registry):
        connection = SessionConnection(registry, _ClosedSocket())
        await connection.start("ada")
        await connection.handle_command(
            {"type": "COMPLETE_LESSON", "lesson_id": "l1", "xp": 15, "gems": 5}
        )
        await asyncio.wait_for(connection.stop(drain=False), timeout=5)
        assert registry.repository.load("ada").xp == 15
        assert registry.get("ada").session_active is False
