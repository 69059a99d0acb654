"""One-shot regional failover.

The VKE control plane is sharded by region. A tenant addressed on the wrong
regional shard is answered with a 403/404 mentioning the tenant; such a call
is replayed once, whole, against the fallback region. The fallback client is
built from :meth:`ClientConfig.for_fallback`, which carries no fallback of its
own, so a replay can never hop a second time.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, TypeVar
from urllib.parse import urlsplit

from vke.errors import APIError, VKEError
from vke.observability.logger import logger

if TYPE_CHECKING:
    from vke.client import VKEClient
    from vke.config import ClientConfig

    ClientFactory = Callable[[ClientConfig], AbstractAsyncContextManager[VKEClient]]

T = TypeVar("T")

Classifier = Callable[[VKEError, str], bool]

CROSS_REGION_STATUSES = frozenset({403, 404})


def is_cross_region_error(error: VKEError, url: str) -> bool:
    """True when ``error`` looks like a tenant living in another regional shard."""
    if not isinstance(error, APIError) or error.code not in CROSS_REGION_STATUSES:
        return False
    if "/cluster/" not in urlsplit(url).path:
        return False
    return "tenant" in error.message.lower()


class FailoverRouter:
    def __init__(
        self,
        config: ClientConfig,
        make_client: ClientFactory,
        *,
        classify: Classifier = is_cross_region_error,
    ) -> None:
        self._config = config
        self._make_client = make_client
        self._classify = classify
        self._log = logger.bind(component="failover")

    def applies(self, error: VKEError, url: str) -> bool:
        fallback = self._config.fallback_endpoint
        if not fallback or fallback.rstrip("/") == self._config.endpoint:
            return False
        return self._classify(error, url)

    async def recover(
        self,
        error: APIError,
        url: str,
        replay: Callable[[VKEClient], Awaitable[T]],
    ) -> T:
        """Replay the call once on the fallback region, or re-raise ``error``.

        When the fallback call fails too, its error is dropped and the
        original ``error`` is raised.
        """
        if not self.applies(error, url):
            raise error

        fallback_config = self._config.for_fallback()
        self._log.warning(
            "{url} answered {error}; retrying once on {fallback}",
            url=url, error=error, fallback=fallback_config.endpoint,
        )
        async with self._make_client(fallback_config) as fallback:
            try:
                return await replay(fallback)
            except VKEError as fallback_error:
                self._log.warning(
                    "Fallback on {fallback} failed too ({fallback_error}); keeping original error",
                    fallback=fallback_config.endpoint, fallback_error=fallback_error,
                )
        raise error


__all__ = ["CROSS_REGION_STATUSES", "FailoverRouter", "is_cross_region_error"]
