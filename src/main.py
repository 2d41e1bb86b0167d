"""Entry point for the realtime SIP call bridge service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_session_manager
from api.routes import router as calls_router
from api.webhooks import router as webhooks_router
from config.settings import get_settings
from telephony.errors import BridgeError, CallAcceptError

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fails startup when OPENAI_API_KEY is missing.
    manager = get_session_manager()
    yield
    LOGGER.info("Shutting down %d active call(s)", len(manager.active_call_ids()))
    await manager.shutdown()


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Realtime Call Bridge",
    description="Bridges inbound SIP calls to OpenAI Realtime sessions.",
    lifespan=lifespan,
)
app.include_router(calls_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")


@app.exception_handler(BridgeError)
async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    content: dict[str, object] = {"detail": exc.detail}
    if isinstance(exc, CallAcceptError):
        content["remote_status"] = exc.remote_status
    return JSONResponse(status_code=exc.status_code, content=content)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
