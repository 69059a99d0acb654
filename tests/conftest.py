from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from vke.client import VKEClient
from vke.config import AuthMode, ClientConfig

SERVER_TIME = 1_700_000_000


@dataclass
class Reply:
    status: int = 200
    json: Any = None
    text: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    delay: float = 0.0


@dataclass
class Recorded:
    method: str
    path: str
    query: dict[str, str]
    headers: dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body)


class FakeVKE:
    """In-process VKE API: canned replies per (method, path), every request recorded."""

    def __init__(self, server_time: int = SERVER_TIME) -> None:
        self.server_time = server_time
        self.time_reply: Reply | None = None
        self.time_delay = 0.0
        self.time_calls = 0
        self.requests: list[Recorded] = []
        self.replies: dict[tuple[str, str], Reply] = {}
        self.stalled = asyncio.Event()
        self.client_aborted = asyncio.Event()
        self.url = ""

        self.app = web.Application()
        self.app.router.add_get("/auth/time", self._time)
        self.app.router.add_get("/stall", self._stall)
        self.app.router.add_route("*", "/{tail:.*}", self._dispatch)

    def on(self, method: str, path: str, reply: Reply | None = None, **kwargs: Any) -> None:
        self.replies[(method, path)] = reply or Reply(**kwargs)

    def on_time(self, reply: Reply | None = None, **kwargs: Any) -> None:
        self.time_reply = reply or Reply(**kwargs)

    def calls(self, method: str, path: str) -> list[Recorded]:
        return [r for r in self.requests if r.method == method and r.path == path]

    async def _record(self, request: web.Request) -> None:
        self.requests.append(
            Recorded(
                method=request.method,
                path=request.path,
                query=dict(request.query),
                headers=dict(request.headers),
                body=await request.read(),
            )
        )

    async def _time(self, request: web.Request) -> web.Response:
        self.time_calls += 1
        await self._record(request)
        if self.time_delay:
            await asyncio.sleep(self.time_delay)
        if self.time_reply is not None:
            return _respond(self.time_reply)
        return web.json_response(self.server_time)

    async def _stall(self, request: web.Request) -> web.Response:
        await self._record(request)
        self.stalled.set()
        try:
            for _ in range(500):
                transport = request.transport
                if transport is None or transport.is_closing():
                    self.client_aborted.set()
                    break
                await asyncio.sleep(0.01)
        except asyncio.CancelledError:
            self.client_aborted.set()
            raise
        return web.json_response({"late": True})

    async def _dispatch(self, request: web.Request) -> web.Response:
        await self._record(request)
        reply = self.replies.get((request.method, request.path))
        if reply is None:
            return web.json_response({"code": 404, "message": "no such route"}, status=404)
        if reply.delay:
            await asyncio.sleep(reply.delay)
        return _respond(reply)


def _respond(reply: Reply) -> web.Response:
    if reply.text is not None:
        return web.Response(status=reply.status, text=reply.text, headers=reply.headers)
    if reply.json is None:
        return web.Response(status=reply.status, headers=reply.headers)
    return web.json_response(reply.json, status=reply.status, headers=reply.headers)


async def _serve(fake: FakeVKE) -> AsyncIterator[FakeVKE]:
    server = TestServer(fake.app)
    await server.start_server()
    fake.url = f"http://{server.host}:{server.port}"
    try:
        yield fake
    finally:
        await server.close()


@pytest.fixture
async def vke() -> AsyncIterator[FakeVKE]:
    async for fake in _serve(FakeVKE()):
        yield fake


@pytest.fixture
async def fallback_vke() -> AsyncIterator[FakeVKE]:
    async for fake in _serve(FakeVKE()):
        yield fake


@pytest.fixture
async def clients() -> AsyncIterator[Callable[..., VKEClient]]:
    """Factory for clients that are closed at teardown."""
    opened: list[VKEClient] = []

    def make(config: ClientConfig, **kwargs: Any) -> VKEClient:
        client = VKEClient(config, **kwargs)
        opened.append(client)
        return client

    yield make
    for client in opened:
        await client.close()

def signed(url: str, **kwargs: Any) -> ClientConfig:
    return ClientConfig(endpoint=url, app_key="app-key", app_secret="app-secret", **kwargs)

def bearer(url: str, token: str = "keystone-token", **kwargs: Any) -> ClientConfig:
    return ClientConfig(endpoint=url, auth_mode=AuthMode.BEARER, token=token, **kwargs)

@pytest.fixture
def signed_config() -> Callable[..., ClientConfig]:
    return signed

@pytest.fixture
def bearer_config() -> Callable[..., ClientConfig]:
    return bearer
