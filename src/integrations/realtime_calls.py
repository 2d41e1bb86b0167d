"""HTTP client for the OpenAI Realtime calls API (SIP call control)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from config.settings import Settings, get_settings
from telephony.errors import CallAcceptError, ConfigurationError

LOGGER = logging.getLogger(__name__)


def build_accept_payload(settings: Settings, *, model: str | None = None, instructions: str | None = None) -> dict[str, Any]:
    """Session configuration sent with every accept request."""

    return {
        "type": "realtime",
        "model": model or settings.realtime_model,
        "output_modalities": ["audio"],
        "audio": {
            "input": {
                "format": "pcm16",
                "turn_detection": {"type": "semantic_vad", "create_response": True},
            },
            "output": {
                "format": "g711_ulaw",
                "voice": settings.realtime_voice,
                "speed": settings.realtime_speed,
            },
        },
        "instructions": instructions or settings.realtime_instructions,
    }


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text or response.reason_phrase


class RealtimeCallsClient:
    """Accepts incoming SIP calls on behalf of a realtime session."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        if not self._settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY not configured")

        self._api_key = self._settings.openai_api_key
        self._api_base = self._settings.openai_api_base.rstrip("/")
        self._transport = transport
        self._sleep = sleep

    @property
    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def realtime_ws_url(self, call_id: str) -> str:
        return f"{self._settings.openai_realtime_ws_url}?{urlencode({'call_id': call_id})}"

    async def accept_call(
        self,
        call_id: str,
        *,
        instructions: str | None = None,
        model: str | None = None,
    ) -> None:
        """Issue a single accept request for ``call_id``."""

        if not call_id:
            raise ValueError("call_id must not be empty")

        payload = build_accept_payload(self._settings, model=model, instructions=instructions)
        url = f"{self._api_base}/realtime/calls/{quote(call_id, safe='')}/accept"
        headers = {**self.auth_headers, "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(
                timeout=self._settings.accept_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise CallAcceptError(call_id, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise CallAcceptError(call_id, _error_message(response), remote_status=response.status_code)

        LOGGER.info("Accepted call %s", call_id)

    async def accept_call_with_retry(
        self,
        call_id: str,
        *,
        instructions: str | None = None,
        model: str | None = None,
    ) -> None:
        """Accept ``call_id``, retrying 404/504 responses with a fixed delay.

        Any other failure is raised at once. When every attempt fails with a
        retryable status, the last error is raised.
        """

        max_attempts = self._settings.accept_max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                await self.accept_call(call_id, instructions=instructions, model=model)
                return
            except CallAcceptError as exc:
                if not exc.retryable or attempt == max_attempts:
                    raise
                LOGGER.warning("Accept attempt %d failed (%s). Retrying...", attempt, exc.remote_status)
                await self._sleep(self._settings.accept_retry_delay_seconds)
