"""Error taxonomy for the VKE SDK.

Every error raised by the SDK derives from :class:`VKEError`:

- :class:`ConfigurationError`: the client cannot be built (unknown endpoint,
  missing credentials). Raised at construction, never retried.
- :class:`TransportError`: the HTTP exchange did not complete.
  :class:`RequestCancelled` is the sub-kind raised when a per-call deadline
  aborts the exchange.
- :class:`APIError`: the server answered outside ``[200, 300)``.
- :class:`DecodeError`: a successful response body could not be decoded.
"""

from __future__ import annotations


class VKEError(Exception):
    """Base class for all VKE SDK errors."""


class ConfigurationError(VKEError):
    """The client configuration is incomplete or invalid."""


class TransportError(VKEError):
    """Network or I/O failure while talking to the API."""


class RequestCancelled(TransportError):
    """The call's deadline expired and the in-flight exchange was aborted."""


class DecodeError(VKEError):
    """A successful response carried a body that could not be decoded."""


class APIError(VKEError):
    """Non-success HTTP answer from the API.

    Attributes:
        code: Error code from the body, or the HTTP status when absent.
        message: Server-provided message, or the raw body text.
        query_id: Correlation id from the ``X-VKE-QueryID`` header, if any.
    """

    def __init__(self, code: int, message: str, query_id: str | None = None) -> None:
        super().__init__(code, message, query_id)
        self.code = code
        self.message = message
        self.query_id = query_id

    def __str__(self) -> str:
        text = f"Error {self.code}: {self.message!r}"
        if self.query_id:
            text += f" (X-VKE-QueryID: {self.query_id})"
        return text


__all__ = [
    "APIError",
    "ConfigurationError",
    "DecodeError",
    "RequestCancelled",
    "TransportError",
    "VKEError",
]
