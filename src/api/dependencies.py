"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from functools import lru_cache

from openai import AsyncOpenAI

from config.settings import get_settings
from telephony.session_manager import CallSessionManager


@lru_cache(maxsize=1)
def _session_manager_factory() -> CallSessionManager:
    return CallSessionManager(get_settings())


def get_session_manager() -> CallSessionManager:
    return _session_manager_factory()


@lru_cache(maxsize=1)
def get_openai_client() -> AsyncOpenAI:
    settings = get_settings()
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_api_base,
        webhook_secret=settings.openai_webhook_secret,
    )
