"""OpenAI platform webhooks.

The SIP trunk forwards calls to OpenAI, which announces each one with a
``realtime.call.incoming`` event. Answering 200 here means the call was accepted.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from openai import AsyncOpenAI, InvalidWebhookSignatureError
from pydantic import ValidationError

from api.dependencies import get_openai_client, get_session_manager
from api.schemas import WebhookAck, WebhookEvent
from config.settings import Settings, get_settings
from telephony.session_manager import CallSessionManager

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/openai", tags=["openai"])

INCOMING_CALL_EVENT = "realtime.call.incoming"


def _verify_signature(client: AsyncOpenAI, body: bytes, request: Request, secret: str) -> None:
    try:
        client.webhooks.verify_signature(body, dict(request.headers), secret=secret)
    except (InvalidWebhookSignatureError, ValueError) as exc:
        LOGGER.warning("Rejected webhook with invalid signature: %s", exc)
        raise HTTPException(status_code=400, detail="Invalid webhook signature") from exc


@router.post("/webhook", response_model=WebhookAck)
async def openai_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    manager: CallSessionManager = Depends(get_session_manager),
) -> WebhookAck:
    body = await request.body()
    if settings.openai_webhook_secret:
        _verify_signature(get_openai_client(), body, request, settings.openai_webhook_secret)

    try:
        event = WebhookEvent.model_validate(json.loads(body))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail="Malformed webhook payload") from exc

    if event.type != INCOMING_CALL_EVENT:
        LOGGER.debug("Ignoring webhook event %s", event.type)
        return WebhookAck()

    call_id = str(event.data.get("call_id") or "").strip()
    if not call_id:
        raise HTTPException(status_code=400, detail="Incoming call event without call_id")

    LOGGER.info("Incoming call %s", call_id)
    await manager.handle_incoming_call(call_id)
    return WebhookAck(call_id=call_id)
