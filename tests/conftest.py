"""Pytest configuration and fixtures for wgexecute tests.

This module provides:
- Fake byte sources for driving Stream directly
- A MockTransport-backed OperationClient factory
- Environment isolation for config tests

Fixtures:
    make_client: Build an OperationClient whose requests go to a handler
    clean_env: Empty config environment rooted in a temp directory
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx
import pytest

from wgexecute import OperationClient

BASE_URL = "http://localhost:9991"

CONFIG_VARS = (
    "WG_BASE_URL",
    "WG_TIMEOUT",
    "WG_MAX_MESSAGE_SIZE",
    "WG_SETTINGS_PATH",
    "VERBOSE",
)


# =============================================================================
# Test Data
# =============================================================================


@dataclass
class Pair:
    """Two-field record; absent fields stay None."""

    a: Optional[int] = None
    b: Optional[int] = None


# =============================================================================
# Fake Byte Sources
# =============================================================================


class FakeBody:
    """In-memory response body yielding fixed chunks.

    After the chunks run out, ``tail`` (if given) is awaited; it can block,
    cancel a context or raise to simulate transport behaviour.
    """

    def __init__(self, chunks, tail: Optional[Callable[[], Awaitable[None]]] = None):
        self.chunks = list(chunks)
        self.tail = tail
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def aiter_bytes(self):
        for chunk in self.chunks:
            yield chunk
        if self.tail is not None:
            await self.tail()

    async def aclose(self) -> None:
        self.close_calls += 1


async def block_forever() -> None:
    await asyncio.Event().wait()


class ChunkStream(httpx.AsyncByteStream):
    """Streaming response body for MockTransport handlers."""

    def __init__(self, chunks):
        self.chunks = list(chunks)

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
async def make_client():
    """Factory for OperationClients backed by httpx.MockTransport.

    Yields:
        Callable taking a request handler (sync or async) and optional
        OperationClient keyword arguments.

    Example:
        async def test_query(make_client):
            client = await make_client(lambda request: httpx.Response(200, json={}))
            assert await client.query("/operations/Q") == {}
    """
    clients = []

    async def factory(handler, **kwargs) -> OperationClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(http_client)
        kwargs.setdefault("base_url", BASE_URL)
        return OperationClient(http_client=http_client, **kwargs)

    yield factory

    for http_client in clients:
        await http_client.aclose()


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run with no config variables set, inside a temp working directory.

    Yields:
        The temp directory; settings.toml there is the active settings file.
    """
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WG_SETTINGS_PATH", str(tmp_path / "settings.toml"))
    yield tmp_path
    # .env loading writes straight into os.environ
    for name in CONFIG_VARS:
        os.environ.pop(name, None)
