import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Union

from .cancellation import CancellationToken
from .errors import AbortedError, HTTPStatusError, RequestTimeoutError
from .logging import get_logger
from .options import Options
from .outcome import Success
from .race import run_attempt
from .descriptor import BodyType, build_request
from .socket_transport import SocketTransport
from .transport import ChunkCallback, Transport, deliver_chunk

OptionsType = Union[Options, Mapping[str, Any], None]


class Client:
    """
    Request orchestrator: normalizes a call, runs it through the attempt race
    and retries failed attempts up to ``retry`` times.

    Features:
    - Response (first byte) and deadline (full response) timeouts per attempt
    - Bounded retries with optional exponential backoff
    - Caller cancellation through :class:`CancellationToken`, never retried
    - JSON request bodies and query-string GET bodies
    - Chunk streaming through ``on_chunk`` on transports that support it
    - Pluggable transports (h11 sockets by default, httpx fetch-style)

    Example:
        async with Client() as client:
            user = await client.get("/users/1", "api.example.com", options={"retry": 2})
            print(user["statusCode"], user["name"])
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        logger: Optional[logging.Logger] = None,
        options: OptionsType = None,
    ) -> None:
        self.transport = transport or SocketTransport()
        self.logger = logger or get_logger()
        self.options = Options.from_value(options)

    async def request(
        self,
        method: str,
        path: str,
        host: str,
        body: BodyType = None,
        headers: Optional[Mapping[str, str]] = None,
        options: OptionsType = None,
        cancellation_token: Optional[CancellationToken] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> Dict[str, Any]:
        """
        Perform one logical request and return the normalized response dict.

        Raises the last attempt's error once the retry budget is spent, or
        :class:`AbortedError` as soon as the token is cancelled.
        """
        opts = Options.from_value(options, base=self.options).with_defaults(
            verbose=self.transport.default_verbose
        )
        req = build_request(method, path, host, body, headers, opts)
        if on_chunk is not None and not self.transport.supports_streaming:
            raise ValueError(f"{type(self.transport).__name__} does not support on_chunk")

        delays = list(opts.iter_delays())
        attempts = 0
        chunks_seen = False

        async def forward_chunk(chunk: bytes) -> None:
            nonlocal chunks_seen
            chunks_seen = True
            await deliver_chunk(on_chunk, chunk)

        while True:
            outcome = await run_attempt(
                self.transport,
                req,
                opts,
                token=cancellation_token,
                on_chunk=forward_chunk if on_chunk is not None else None,
                logger=self.logger,
            )
            if isinstance(outcome, Success):
                return outcome.payload
            if isinstance(outcome, AbortedError):
                raise outcome

            if opts.verbose and isinstance(outcome, HTTPStatusError):
                self.logger.warning(f"{req.method} {req.url} rejected: {outcome.fields}")
            # Chunks already handed to the caller cannot be replayed.
            if attempts >= opts.retry or chunks_seen:
                raise outcome

            attempts += 1
            if opts.verbose:
                if isinstance(outcome, RequestTimeoutError):
                    self.logger.warning(f"The network call timed out. Trying again... ({outcome}; attempt {attempts})")
                else:
                    self.logger.warning(f"The network call produced an error. Trying again... ({outcome}; attempt {attempts})")
            await self._sleep(delays.pop(0) if delays else 0, cancellation_token)

    async def get(self, path: str, host: str, **kwargs) -> Dict[str, Any]:
        return await self.request("GET", path, host, **kwargs)

    async def post(self, path: str, host: str, body: BodyType = None, **kwargs) -> Dict[str, Any]:
        return await self.request("POST", path, host, body, **kwargs)

    async def put(self, path: str, host: str, body: BodyType = None, **kwargs) -> Dict[str, Any]:
        return await self.request("PUT", path, host, body, **kwargs)

    async def delete(self, path: str, host: str, body: BodyType = None, **kwargs) -> Dict[str, Any]:
        return await self.request("DELETE", path, host, body, **kwargs)

    @staticmethod
    async def _sleep(delay: float, token: Optional[CancellationToken] = None) -> None:
        if token is not None and token.cancelled:
            raise AbortedError()
        if delay <= 0:
            return
        if token is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(token.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise AbortedError()

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["Client"]
