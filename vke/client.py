"""Async client for the VKE control-plane API."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from functools import cached_property
from typing import Any, TypeVar

from vke.config import DEFAULT_TIMEOUT, AuthMode, ClientConfig, default_endpoints
from vke.errors import APIError, DecodeError
from vke.failover import FailoverRouter
from vke.infra.clock import ClockSynchronizer
from vke.infra.decode import Converter, as_int, decode_response
from vke.infra.http import (
    Auth,
    Dispatcher,
    NoAuth,
    RequestDescriptor,
    RequestObserver,
    SignatureAuth,
    TokenAuth,
    deadline,
)
from vke.nodepool import NodePoolClient
from vke.observability.logger import logger

TIME_PATH = "/auth/time"

T = TypeVar("T")


class VKEClient:
    """Signed (or token-authenticated) client bound to one endpoint.

    Example:
        async with VKEClient(ClientConfig.resolve("vke", app_key=..., app_secret=...)) as client:
            pools = await client.nodepools.list_node_pools(cluster_id)

    Every call runs under its own deadline (``timeout`` argument, defaulting
    to ``config.timeout``); the deadline covers clock synchronization, the
    exchange and the regional failover hop, if any.
    """

    def __init__(self, config: ClientConfig, *, observer: RequestObserver | None = None) -> None:
        self._config = config
        self._observer = observer
        self._clock = ClockSynchronizer(self._fetch_server_time)
        self._dispatcher = Dispatcher(config.endpoint, self._make_auth(), observer=observer)
        self._failover = FailoverRouter(config, self._fallback_client)
        self._log = logger.bind(component="client", endpoint=config.endpoint)

    @classmethod
    def from_token(
        cls,
        token: str,
        endpoint: str = "vke",
        *,
        endpoints: Mapping[str, str] | None = None,
        fallback_endpoint: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        observer: RequestObserver | None = None,
    ) -> VKEClient:
        """Client authenticating with an OpenStack keystone token instead of signatures."""
        config = ClientConfig.resolve(
            endpoint,
            token=token,
            auth_mode=AuthMode.BEARER,
            timeout=timeout,
            fallback_endpoint=fallback_endpoint,
            endpoints=default_endpoints() if endpoints is None else endpoints,
        )
        return cls(config, observer=observer)

    @classmethod
    def from_env(cls, *, observer: RequestObserver | None = None) -> VKEClient:
        return cls(ClientConfig.from_env(), observer=observer)

    def _make_auth(self) -> Auth:
        match self._config.auth_mode:
            case AuthMode.SIGNED:
                return SignatureAuth(
                    self._config.app_key, self._config.app_secret, self._config.endpoint, self._clock,
                )
            case AuthMode.BEARER:
                return TokenAuth(self._config.token)
            case AuthMode.UNAUTHENTICATED:
                return NoAuth()

    def _fallback_client(self, config: ClientConfig) -> VKEClient:
        return VKEClient(config, observer=self._observer)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    @cached_property
    def nodepools(self) -> NodePoolClient:
        return NodePoolClient(self)

    # ─── Call pipeline ───────────────────────────────────────────────

    async def call_api(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        into: Converter[T] | None = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, Any] | None = None,
        auth: bool = True,
        timeout: float | None = None,
    ) -> T | None:
        """Lowest-level call helper.

        Serializes ``body`` as JSON, signs the request when ``auth`` is set,
        and decodes a successful response with ``into``. A cross-region API
        error is replayed once on the fallback endpoint.

        Raises:
            APIError: non-2xx answer (the original one if failover failed).
            DecodeError: the success body did not match ``into``.
            RequestCancelled: the call's deadline expired.
            TransportError: the network exchange failed.
        """
        descriptor = RequestDescriptor(
            method=method.upper(),
            path=path,
            params=params,
            body=body,
            headers=headers or {},
            auth_required=auth,
        )
        async with deadline(self._config.timeout if timeout is None else timeout):
            return await self._roundtrip(descriptor, into)

    async def _roundtrip(self, descriptor: RequestDescriptor, into: Converter[T] | None) -> T | None:
        response = await self._dispatcher.execute(descriptor)
        try:
            return decode_response(response, into)
        except APIError as e:
            self._log.warning(
                "API error {method} {path}: {error}",
                method=descriptor.method, path=descriptor.target, error=e,
            )
            return await self._failover.recover(
                e, response.url, lambda fallback: fallback._roundtrip(descriptor, into),
            )

    async def get(self, path: str, *, into: Converter[T] | None = None, auth: bool = True, **kwargs: Any) -> T | None:
        return await self.call_api("GET", path, into=into, auth=auth, **kwargs)

    async def post(self, path: str, body: Any = None, *, into: Converter[T] | None = None, auth: bool = True, **kwargs: Any) -> T | None:
        return await self.call_api("POST", path, body=body, into=into, auth=auth, **kwargs)

    async def put(self, path: str, body: Any = None, *, into: Converter[T] | None = None, auth: bool = True, **kwargs: Any) -> T | None:
        return await self.call_api("PUT", path, body=body, into=into, auth=auth, **kwargs)

    async def delete(self, path: str, *, into: Converter[T] | None = None, auth: bool = True, **kwargs: Any) -> T | None:
        return await self.call_api("DELETE", path, into=into, auth=auth, **kwargs)

    # ─── Clock ───────────────────────────────────────────────────────

    async def _fetch_server_time(self) -> int:
        timestamp = await self.get(TIME_PATH, into=as_int, auth=False)
        if timestamp is None:
            raise DecodeError(f"empty answer from {TIME_PATH}")
        return timestamp

    async def ping(self) -> None:
        """Check the API is up; raises when ``/auth/time`` does not answer."""
        await self._fetch_server_time()

    async def time(self) -> datetime:
        return await self._clock.server_time()

    async def time_delta(self) -> float:
        """Seconds the local clock is ahead of the API clock (memoized)."""
        return await self._clock.offset()

    def invalidate_time_delta(self) -> None:
        self._clock.invalidate()

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        await self._dispatcher.close()

    async def __aenter__(self) -> VKEClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()


__all__ = ["VKEClient"]
