"""webfetch: asyncio HTTP requests with response/deadline timeouts, bounded
retries and caller cancellation, over an h11 socket transport or httpx.

    import webfetch

    data = await webfetch.get("/v1/items", "api.example.com", body={"page": 2}, options={"retry": 1})

Blocking callers can use :mod:`webfetch.sync` with the same signatures.
"""

from .api import delete, get, post, put, request
from .cancellation import CancellationToken
from .client import Client
from .options import Options
from .descriptor import RequestDescriptor, build_request
from .transport import RawResponse, Transport
from .socket_transport import SocketTransport
from .fetch_transport import FetchTransport
from . import sync
from .errors import (
    WebFetchError,
    UnsupportedMethodError,
    RequestError,
    ResponseError,
    HTTPStatusError,
    NetworkError,
    RequestTimeoutError,
    AbortedError,
)

__all__ = [
    "Client",
    "Options",
    "CancellationToken",
    "RequestDescriptor",
    "build_request",
    "RawResponse",
    "Transport",
    "SocketTransport",
    "FetchTransport",
    "WebFetchError",
    "UnsupportedMethodError",
    "RequestError",
    "ResponseError",
    "HTTPStatusError",
    "NetworkError",
    "RequestTimeoutError",
    "AbortedError",
    "sync",
    "request",
    "get",
    "post",
    "put",
    "delete",
]


__version__ = "0.1.0"
