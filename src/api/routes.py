"""FastAPI routes exposing call session operations."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_session_manager
from api.schemas import ActiveCallsResponse, CallStatusResponse
from telephony.session_manager import CallSessionManager

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/calls", tags=["calls"])


@router.get("", response_model=ActiveCallsResponse)
async def list_active_calls(
    manager: CallSessionManager = Depends(get_session_manager),
) -> ActiveCallsResponse:
    return ActiveCallsResponse(active_calls=manager.active_call_ids())


@router.post("/{call_id}/incoming", response_model=CallStatusResponse)
async def incoming_call(
    call_id: str,
    manager: CallSessionManager = Depends(get_session_manager),
) -> CallStatusResponse:
    # CallAcceptError is mapped to an HTTP error by the app-level handler.
    await manager.handle_incoming_call(call_id)
    return CallStatusResponse(call_id=call_id, status="accepted")


@router.post("/{call_id}/setup", response_model=CallStatusResponse)
async def setup_call(
    call_id: str,
    manager: CallSessionManager = Depends(get_session_manager),
) -> CallStatusResponse:
    """Accept with retry and connect. Failures show up in logs only."""

    await manager.terminate_call(call_id)
    return CallStatusResponse(call_id=call_id, status="initiated")


@router.delete("/{call_id}", response_model=CallStatusResponse)
async def close_call(
    call_id: str,
    manager: CallSessionManager = Depends(get_session_manager),
) -> CallStatusResponse:
    await manager.close(call_id)
    return CallStatusResponse(call_id=call_id, status="closed")
