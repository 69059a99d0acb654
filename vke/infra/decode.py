"""Turn raw responses into payloads or :class:`~vke.errors.APIError`."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, TypeVar

from vke.errors import APIError, DecodeError

from .http import RawResponse

QUERY_ID_HEADER = "X-VKE-QueryID"

T = TypeVar("T")

Converter = Callable[[Any], T]


def _api_error(response: RawResponse) -> APIError:
    code, message = response.status, response.text
    try:
        payload = json.loads(response.body)
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("code", code), int):
        code = payload.get("code", code)
        message = str(payload.get("message") or "")
    return APIError(code, message, response.header(QUERY_ID_HEADER))


def decode_response(response: RawResponse, into: Converter[T] | None = None) -> T | None:
    """Decode ``response`` with ``into``.

    Non-2xx responses raise :class:`APIError`. Successful responses with an
    empty body, or decoded without a converter, yield ``None``.
    """
    if not 200 <= response.status < 300:
        raise _api_error(response)

    if not response.body or into is None:
        return None

    try:
        return into(json.loads(response.body))
    except (ValueError, TypeError, KeyError) as e:
        raise DecodeError(
            f"cannot decode {response.status} response from {response.url}: {e}"
        ) from e


def list_of(convert: Converter[T]) -> Converter[list[T]]:
    """Converter for JSON arrays whose items are each decoded with ``convert``."""

    def decode_list(payload: Any) -> list[T]:
        if not isinstance(payload, list):
            raise TypeError(f"expected a JSON array, got {type(payload).__name__}")
        return [convert(item) for item in payload]

    return decode_list


def as_int(payload: Any) -> int:
    if isinstance(payload, bool) or not isinstance(payload, int):
        raise TypeError(f"expected an integer, got {payload!r}")
    return payload


__all__ = ["QUERY_ID_HEADER", "as_int", "decode_response", "list_of"]
