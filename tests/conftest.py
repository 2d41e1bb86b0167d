from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Must be set before anything calls get_settings(); the manager refuses to start without it.
os.environ.setdefault("OPENAI_API_KEY", "sk-test")


class FakeConnection:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.close_calls: list[int] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.close_delay = 0.0
        self.close_error: Exception | None = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append(code)
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        if self.close_error is not None:
            raise self.close_error
        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
            self._inbox.put_nowait(None)

    def push(self, message) -> None:
        self._inbox.put_nowait(message)

    def drop(self, code: int, reason: str) -> None:
        """Simulate the remote side closing the socket."""

        self.close_code = code
        self.close_reason = reason
        self._inbox.put_nowait(None)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            item = await self._inbox.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item


class FakeConnector:
    def __init__(self, error: Exception | None = None, *, hang: bool = False) -> None:
        self.error = error
        self.hang = hang
        self.calls: list[tuple[str, dict]] = []
        self.connections: list[FakeConnection] = []

    async def __call__(self, url: str, **kwargs) -> FakeConnection:
        self.calls.append((url, kwargs))
        if self.hang:
            await asyncio.get_running_loop().create_future()
        if self.error is not None:
            raise self.error
        connection = FakeConnection()
        self.connections.append(connection)
        return connection


@pytest.fixture()
def settings():
    from config.settings import Settings

    return Settings(openai_api_key="sk-test", _env_file=None)


@pytest.fixture()
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture(scope="session")
def app():
    import importlib

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
