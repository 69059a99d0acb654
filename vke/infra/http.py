from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlencode

import aiohttp
from yarl import URL

from vke.errors import RequestCancelled, TransportError
from vke.observability.logger import logger

from .clock import ClockSynchronizer
from .signing import sign, signature_headers

JSON_CONTENT_TYPE = "application/json;charset=utf-8"

# ─── Request / Response ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    method: str
    path: str
    params: Mapping[str, Any] | None = None
    body: Any = None
    headers: Mapping[str, Any] = field(default_factory=dict)
    auth_required: bool = True

    @property
    def target(self) -> str:
        """Path with its encoded query string, as sent and as signed."""
        if not self.params:
            return self.path
        return f"{self.path}?{urlencode(self.params, doseq=True)}"

    def encode_body(self) -> bytes:
        if self.body is None:
            return b""
        return json.dumps(self.body, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True, slots=True)
class RawResponse:
    status: int
    body: bytes
    headers: Mapping[str, str]
    url: str

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


# ─── Auth ────────────────────────────────────────────────────────────


@runtime_checkable
class Auth(Protocol):
    async def headers(self, method: str, target: str, body: bytes) -> dict[str, str]: ...


class NoAuth:
    async def headers(self, method: str, target: str, body: bytes) -> dict[str, str]:
        return {}


class TokenAuth:
    """OpenStack keystone token passed through as ``X-Auth-Token``."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def headers(self, method: str, target: str, body: bytes) -> dict[str, str]:
        return {"X-Auth-Token": self._token}


class SignatureAuth:
    def __init__(self, app_key: str, app_secret: str, endpoint: str, clock: ClockSynchronizer) -> None:
        self._app_key = app_key
        self._app_secret = app_secret
        self._endpoint = endpoint
        self._clock = clock

    async def headers(self, method: str, target: str, body: bytes) -> dict[str, str]:
        timestamp = await self._clock.now()
        signature = sign(self._app_secret, method, self._endpoint, target, body, timestamp)
        return signature_headers(self._app_key, signature, timestamp)


# ─── Observer ────────────────────────────────────────────────────────


@runtime_checkable
class RequestObserver(Protocol):
    def on_request(self, method: str, url: str, headers: Mapping[str, str], body: bytes) -> None: ...
    def on_response(self, response: RawResponse) -> None: ...


class LoggingObserver:
    """Traces every exchange; signature and token headers are never logged."""

    _SECRET_HEADERS = frozenset({"x-auth-token", "x-vke-signature"})

    def __init__(self) -> None:
        self._log = logger.bind(component="http.wire")

    def on_request(self, method: str, url: str, headers: Mapping[str, str], body: bytes) -> None:
        shown = {k: ("***" if k.lower() in self._SECRET_HEADERS else v) for k, v in headers.items()}
        self._log.trace(
            "> {method} {url} headers={headers} body={body}",
            method=method, url=url, headers=shown, body=body[:500].decode("utf-8", errors="replace"),
        )

    def on_response(self, response: RawResponse) -> None:
        self._log.trace(
            "< {status} {url} body={body}",
            status=response.status, url=response.url, body=response.text[:500],
        )


# ─── Deadline ────────────────────────────────────────────────────────


@asynccontextmanager
async def deadline(seconds: float | None) -> AsyncIterator[None]:
    """Per-call deadline; expiry cancels the work inside and raises ``RequestCancelled``."""
    try:
        async with asyncio.timeout(seconds):
            yield
    except TimeoutError as e:
        raise RequestCancelled(f"request aborted after exceeding its {seconds}s deadline") from e


# ─── Dispatcher ──────────────────────────────────────────────────────


class Dispatcher:
    def __init__(
        self,
        base_url: str,
        auth: Auth | None = None,
        *,
        observer: RequestObserver | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth or NoAuth()
        self._observer = observer
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http")

    @property
    def base_url(self) -> str:
        return self._base_url

    def url(self, target: str) -> str:
        return f"{self._base_url}{target}"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            # no session-wide timeout: deadlines are per call
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
        return self._session

    async def _build_headers(self, descriptor: RequestDescriptor, target: str, body: bytes) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if body:
            headers["Content-Type"] = JSON_CONTENT_TYPE
        if descriptor.auth_required:
            headers.update(await self._auth.headers(descriptor.method.upper(), target, body))
        headers.update({name: str(value) for name, value in descriptor.headers.items()})
        return headers

    async def execute(self, descriptor: RequestDescriptor, *, timeout: float | None = None) -> RawResponse:
        """Send one request and read its whole body.

        Raises:
            RequestCancelled: ``timeout`` elapsed before the body was read.
            TransportError: the connection failed.
        """
        method = descriptor.method.upper()
        target = descriptor.target
        body = descriptor.encode_body()
        url = self.url(target)

        async with deadline(timeout):
            headers = await self._build_headers(descriptor, target, body)
            self._log.debug("{method} {target}", method=method, target=target)
            if self._observer is not None:
                self._observer.on_request(method, url, headers, body)

            session = await self._ensure_session()
            try:
                async with session.request(
                    method, URL(url, encoded=True), headers=headers, data=body or None
                ) as resp:
                    payload = await resp.read()
                    response = RawResponse(
                        status=resp.status,
                        body=payload,
                        headers={k.lower(): v for k, v in resp.headers.items()},
                        url=url,
                    )
            except aiohttp.ClientError as e:
                self._log.warning("{method} {url} failed: {error}", method=method, url=url, error=e)
                raise TransportError(f"{method} {url}: {e}") from e

        if self._observer is not None:
            self._observer.on_response(response)
        return response

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        if self._session and not self._session.closed:
            self._log.debug("Closing HTTP session")
            await self._session.close()

    async def __aenter__(self) -> Dispatcher:
        await self._ensure_session()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()


__all__ = [
    "Auth",
    "Dispatcher",
    "LoggingObserver",
    "NoAuth",
    "RawResponse",
    "RequestDescriptor",
    "RequestObserver",
    "SignatureAuth",
    "TokenAuth",
    "deadline",
]
