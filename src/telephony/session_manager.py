"""Per-call realtime session lifecycle: accept, connect, track, close."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosedError

from config.settings import Settings, get_settings
from integrations.realtime_calls import RealtimeCallsClient
from telephony.errors import CallAcceptError

LOGGER = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000

GREETING_INSTRUCTIONS = "Greet the caller and ask for their name and how you can help."

WebSocketConnector = Callable[..., Awaitable[ClientConnection]]


@dataclass(slots=True)
class CallSession:
    call_id: str
    connection: ClientConnection
    reader: asyncio.Task[None] | None = None


class CallSessionManager:
    """Bridges accepted SIP calls to realtime WebSocket sessions.

    Holds at most one open connection per call id. Everything runs on the
    event loop, so the registry needs no locking.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        calls_client: RealtimeCallsClient | None = None,
        ws_connect: WebSocketConnector = connect,
    ) -> None:
        self._settings = settings or get_settings()
        self._calls = calls_client or RealtimeCallsClient(self._settings)
        self._ws_connect = ws_connect
        self._sessions: dict[str, CallSession] = {}
        self._background: set[asyncio.Task[None]] = set()

    def active_call_ids(self) -> list[str]:
        return list(self._sessions)

    async def accept_call(self, call_id: str, *, instructions: str | None = None, model: str | None = None) -> None:
        await self._calls.accept_call(call_id, instructions=instructions, model=model)

    async def accept_call_with_retry(
        self,
        call_id: str,
        *,
        instructions: str | None = None,
        model: str | None = None,
    ) -> None:
        await self._calls.accept_call_with_retry(call_id, instructions=instructions, model=model)

    async def connect(self, call_id: str) -> CallSession:
        """Open the realtime socket for an accepted call and send the opener."""

        connection = await self._ws_connect(
            self._calls.realtime_ws_url(call_id),
            additional_headers=self._calls.auth_headers,
        )
        LOGGER.info("WS connection opened for call %s", call_id)
        try:
            await connection.send(json.dumps(self._greeting_event()))
        except Exception:
            await connection.close(code=NORMAL_CLOSURE)
            raise

        session = CallSession(call_id=call_id, connection=connection)
        previous = self._sessions.get(call_id)
        self._sessions[call_id] = session
        session.reader = asyncio.create_task(self._read_events(session))

        if previous is not None:
            LOGGER.warning("Replacing existing WS connection for call %s", call_id)
            try:
                await previous.connection.close(code=NORMAL_CLOSURE)
            except Exception:
                LOGGER.exception("Failed to close superseded WS connection for %s", call_id)
        return session

    async def handle_incoming_call(self, call_id: str) -> asyncio.Task[None]:
        """Accept ``call_id`` once, then connect in the background.

        Accept failures propagate. Connect failures are only logged.
        """

        await self._calls.accept_call(call_id)
        task = asyncio.create_task(self._connect_in_background(call_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def terminate_call(self, call_id: str) -> None:
        """Accept (with retry) and connect ``call_id``, logging any failure.

        Despite the name this sets a call up. It never raises.
        """

        LOGGER.info("Handling incoming call: %s", call_id)
        try:
            await self._calls.accept_call_with_retry(call_id)
            await self.connect(call_id)
        except CallAcceptError as exc:
            LOGGER.error("Initialization failed for %s: %s", call_id, exc.detail)
        except Exception as exc:
            LOGGER.error("Initialization failed for %s: %s", call_id, exc)

    async def close(self, call_id: str) -> None:
        session = self._sessions.pop(call_id, None)
        if session is None:
            return
        await session.connection.close(code=NORMAL_CLOSURE)
        if session.reader is not None:
            await session.reader

    async def shutdown(self) -> None:
        """Close every registered connection. Called once at process teardown."""

        pending = list(self._background)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        sessions = list(self._sessions.values())
        results = await asyncio.gather(
            *(session.connection.close(code=NORMAL_CLOSURE) for session in sessions),
            return_exceptions=True,
        )
        for session, result in zip(sessions, results):
            if isinstance(result, Exception):
                LOGGER.error("Failed to close WS connection for %s: %s", session.call_id, result)
                if session.reader is not None:
                    session.reader.cancel()
        await asyncio.gather(
            *(session.reader for session in sessions if session.reader is not None),
            return_exceptions=True,
        )

    @staticmethod
    def _greeting_event() -> dict[str, Any]:
        return {
            "type": "response.create",
            "response": {"instructions": GREETING_INSTRUCTIONS},
        }

    async def _connect_in_background(self, call_id: str) -> None:
        try:
            await self.connect(call_id)
        except Exception:
            LOGGER.exception("Failed to connect WS for %s", call_id)

    async def _read_events(self, session: CallSession) -> None:
        call_id = session.call_id
        connection = session.connection
        try:
            async for message in connection:
                text = message if isinstance(message, str) else message.decode("utf-8", errors="replace")
                # TODO: dispatch realtime events (transcripts, tool calls) once handlers exist.
                LOGGER.debug("WS message (%s): %s", call_id, text)
        except ConnectionClosedError as exc:
            LOGGER.error("WS error for %s: %s", call_id, exc, exc_info=True)
        except Exception:
            LOGGER.exception("WS error for %s", call_id)
        finally:
            LOGGER.info(
                "WS closed for %s: code=%s reason=%s",
                call_id,
                connection.close_code,
                connection.close_reason,
            )
            if self._sessions.get(call_id) is session:
                del self._sessions[call_id]
