"""Request pipeline: clock sync, signing, dispatch, decoding."""

from .clock import ClockSynchronizer
from .decode import QUERY_ID_HEADER, as_int, decode_response, list_of
from .http import (
    Auth,
    Dispatcher,
    LoggingObserver,
    NoAuth,
    RawResponse,
    RequestDescriptor,
    RequestObserver,
    SignatureAuth,
    TokenAuth,
    deadline,
)
from .once import OnceCell
from .signing import sign, signature_headers

__all__ = [
    "Auth",
    "ClockSynchronizer",
    "Dispatcher",
    "LoggingObserver",
    "NoAuth",
    "OnceCell",
    "QUERY_ID_HEADER",
    "RawResponse",
    "RequestDescriptor",
    "RequestObserver",
    "SignatureAuth",
    "TokenAuth",
    "as_int",
    "deadline",
    "decode_response",
    "list_of",
    "sign",
    "signature_headers",
]
