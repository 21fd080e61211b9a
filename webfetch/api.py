"""Module-level shortcuts that run a single call through a short-lived :class:`Client`."""
from typing import Any, Dict, Mapping, Optional

from .cancellation import CancellationToken
from .client import Client, OptionsType
from .descriptor import BodyType
from .transport import ChunkCallback, Transport


async def request(
    method: str,
    path: str,
    host: str,
    body: BodyType = None,
    headers: Optional[Mapping[str, str]] = None,
    options: OptionsType = None,
    cancellation_token: Optional[CancellationToken] = None,
    on_chunk: Optional[ChunkCallback] = None,
    *,
    transport: Optional[Transport] = None,
) -> Dict[str, Any]:
    """Perform one request with retries and timeouts; see :meth:`Client.request`."""
    async with Client(transport=transport) as client:
        return await client.request(
            method,
            path,
            host,
            body,
            headers,
            options,
            cancellation_token=cancellation_token,
            on_chunk=on_chunk,
        )


async def get(path: str, host: str, **kwargs) -> Dict[str, Any]:
    """Send a GET; ``body`` items become the query string."""
    return await request("GET", path, host, **kwargs)


async def post(path: str, host: str, body: BodyType = None, **kwargs) -> Dict[str, Any]:
    """Send a POST with a JSON (or caller-typed) body."""
    return await request("POST", path, host, body, **kwargs)


async def put(path: str, host: str, body: BodyType = None, **kwargs) -> Dict[str, Any]:
    """Send a PUT with a JSON (or caller-typed) body."""
    return await request("PUT", path, host, body, **kwargs)


async def delete(path: str, host: str, body: BodyType = None, **kwargs) -> Dict[str, Any]:
    """Send a DELETE; like the other body methods, the body is serialized."""
    return await request("DELETE", path, host, body, **kwargs)
