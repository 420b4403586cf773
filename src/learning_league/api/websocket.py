"""WebSocket session hub: pushes user snapshots and accepts commands."""

import asyncio

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from learning_league.api.routes import user_payload
from learning_league.errors import LeagueError, PersistenceFailure
from learning_league.store.commands import parse_command
from learning_league.store.registry import SessionRegistry
from learning_league.store.user_store import UserStore

logger = structlog.get_logger()

NO_SESSION = {"type": "error", "error": "NoSession", "detail": "Start a session first"}


def error_message(exc: LeagueError) -> dict:
    return {"type": "error", "error": type(exc).__name__, "detail": str(exc)}


class SessionConnection:
    """One browser session bound to a user's live store.

    Snapshots produced by any dispatch (from this socket or from REST calls)
    are queued and forwarded to the browser in order.

    Args:
        registry: Source of live user stores.
        websocket: Connection to the browser.
    """

    def __init__(self, registry: SessionRegistry, websocket: WebSocket):
        self.registry = registry
        self.websocket = websocket
        self.store: UserStore | None = None
        self._outbox: asyncio.Queue[dict] = asyncio.Queue()
        self._sender: asyncio.Task | None = None
        self._unsubscribers: list = []

    async def start(self, user_id: str) -> None:
        """Bind to the user's store and run the session-start hook."""
        self.store = self.registry.get(user_id)
        self._sender = asyncio.create_task(self._send_loop())
        self._unsubscribers = [self.store.on_persistence_failure(self._on_persist_failed)]
        logger.info("ws_session_starting", user_id=user_id)
        self.store.start_session()
        self._unsubscribers.append(self.store.subscribe(self._on_snapshot))
        self._queue_state()

    async def handle_command(self, payload: dict) -> None:
        if self.store is None:
            self._outbox.put_nowait(dict(NO_SESSION))
            return
        try:
            command = parse_command(payload)
        except ValidationError as e:
            self._outbox.put_nowait({
                "type": "error",
                "error": "InvalidCommand",
                "detail": e.errors(include_url=False),
            })
            return
        try:
            self.store.dispatch(command)
        except LeagueError as e:
            self._outbox.put_nowait(error_message(e))

    async def stop(self, drain: bool = True) -> None:
        """End the session and wait for its saves.

        Args:
            drain: Deliver queued messages first. Pass False once the browser
                has gone away, since nothing more can be sent.
        """
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self.store is not None:
            self.store.logout()
        if self._sender is not None:
            if drain:
                await self._outbox.join()
            self._sender.cancel()
            await asyncio.wait({self._sender})
            self._sender = None
        if self.store is not None:
            await self.store.flush()

    def _queue_state(self) -> None:
        payload = user_payload(self.store)
        payload["type"] = "user_state"
        self._outbox.put_nowait(payload)

    def _on_snapshot(self, _user) -> None:
        self._queue_state()

    def _on_persist_failed(self, failure: PersistenceFailure) -> None:
        self._outbox.put_nowait({
            "type": "notification",
            "level": "warning",
            "message": "Progress could not be saved; it will be retried on the next change.",
            "detail": failure.reason,
        })

    async def _send_loop(self) -> None:
        while True:
            data = await self._outbox.get()
            try:
                await self.websocket.send_json(data)
            except Exception:
                logger.warning("browser_send_failed")
            finally:
                self._outbox.task_done()


async def handle_session_websocket(websocket: WebSocket, registry: SessionRegistry) -> None:
    """Handle a browser WebSocket connection."""
    await websocket.accept()
    connection: SessionConnection | None = None

    try:
        while True:
            data = await websocket.receive_json()
            msg_type = data.get("type", "")

            if msg_type == "start_session":
                if connection:
                    await connection.stop()
                connection = SessionConnection(registry, websocket)
                try:
                    await connection.start(str(data.get("user_id", "")))
                except LeagueError as e:
                    await websocket.send_json(error_message(e))
                    connection = None

            elif msg_type == "command":
                if connection is None:
                    await websocket.send_json(NO_SESSION)
                else:
                    await connection.handle_command(data.get("command") or {})

            elif msg_type == "logout":
                if connection:
                    await connection.stop()
                    connection = None
                await websocket.send_json({"type": "session_state", "status": "logged_out"})

    except WebSocketDisconnect:
        logger.info("browser_disconnected")
    except Exception:
        logger.exception("websocket_handler_error")
    finally:
        if connection:
            try:
                await connection.stop(drain=False)
            except Exception:
                logger.warning("session_stop_failed")
