"""Request signature.

The signed string joins the request fields with ``+``::

    {secret}+{METHOD}+{endpoint}+{path}{body}+{timestamp}

``path`` carries the encoded query string when there is one and ``body`` is
the exact serialized JSON sent on the wire (empty for body-less requests).
The digest travels in ``X-VKE-Signature`` prefixed with ``$1$``, alongside
the application key and the timestamp that was signed.
"""

from __future__ import annotations

import hashlib

SIGNATURE_VERSION = "$1$"


def sign(
    secret: str,
    method: str,
    endpoint: str,
    path: str,
    body: bytes | str,
    timestamp: int,
) -> str:
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    message = f"{secret}+{method.upper()}+{endpoint}+{path}{body}+{timestamp}"
    return hashlib.sha1(message.encode("utf-8")).hexdigest()


def signature_headers(app_key: str, signature: str, timestamp: int) -> dict[str, str]:
    return {
        "X-VKE-Application": app_key,
        "X-VKE-Timestamp": str(timestamp),
        "X-VKE-Signature": f"{SIGNATURE_VERSION}{signature}",
    }


__all__ = ["SIGNATURE_VERSION", "sign", "signature_headers"]
