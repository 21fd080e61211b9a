from typing import Optional

import httpx

from .options import Options
from .descriptor import RequestDescriptor
from .transport import AckCallback, ChunkCallback, RawResponse, Transport


class FetchTransport(Transport):
    """
    Fetch-style transport built on :class:`httpx.AsyncClient`.

    A caller-owned client may be injected (for proxies, mounts or
    ``httpx.MockTransport`` in tests); it is never closed here. Without one,
    each send uses a short-lived client honouring ``reject_unauthorized``.
    Chunk callbacks are not supported.
    """

    supports_streaming = False
    default_verbose = False

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self.client = client

    async def send(
        self,
        request: RequestDescriptor,
        *,
        on_ack: AckCallback,
        on_chunk: Optional[ChunkCallback] = None,
        options: Optional[Options] = None,
    ) -> RawResponse:
        if on_chunk is not None:
            raise ValueError("FetchTransport does not support on_chunk")
        if self.client is not None:
            return await self._exchange(self.client, request, on_ack)
        verify = options.reject_unauthorized if options is not None else True
        # Timeouts are enforced by the attempt race, not by httpx. Proxy and
        # certificate settings never come from the environment.
        async with httpx.AsyncClient(verify=verify, timeout=None, trust_env=False) as client:
            return await self._exchange(client, request, on_ack)

    @staticmethod
    async def _exchange(client: httpx.AsyncClient, request: RequestDescriptor, on_ack: AckCallback) -> RawResponse:
        http_request = client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body or None,
        )
        response = await client.send(http_request, stream=True)
        try:
            on_ack()
            body = await response.aread()
        finally:
            await response.aclose()
        return RawResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=body,
            reason=response.reason_phrase,
        )


__all__ = ["FetchTransport"]
