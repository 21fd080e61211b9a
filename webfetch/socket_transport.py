import asyncio
import ssl
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

import h11

from .errors import RequestError, ResponseError
from .options import Options
from .descriptor import RequestDescriptor
from .transport import AckCallback, ChunkCallback, RawResponse, Transport, deliver_chunk

# Shared buffer size for network reads
READ_BUFFER_SIZE = 65536


@lru_cache(maxsize=2)
def _get_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Get or create cached SSL context."""
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _decode_headers(raw_headers: List[Tuple[bytes, bytes]]) -> Dict[str, str]:
    decoded: Dict[str, str] = {}
    for k, v in raw_headers:
        try:
            decoded[k.decode("ascii")] = v.decode("ascii")
        except UnicodeDecodeError:
            decoded[k.decode("utf-8", errors="replace")] = v.decode("utf-8", errors="replace")
    return decoded


class _Exchange:
    """
    One HTTP/1.1 request/response over a fresh asyncio stream pair and h11.

    The stream is never reused; ``close`` runs whether the exchange finished,
    failed or was cancelled.
    """

    def __init__(self, request: RequestDescriptor, verify: bool = True) -> None:
        self.request = request
        self.ssl_context = _get_ssl_context(verify) if request.use_ssl else None
        self.h11_conn = h11.Connection(h11.CLIENT)
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    async def connect(self) -> None:
        host = self.request.host.strip("[]")
        self.reader, self.writer = await asyncio.open_connection(
            host,
            self.request.port,
            ssl=self.ssl_context,
            server_hostname=host if self.ssl_context else None,
        )

    async def close(self) -> None:
        if self.writer is None:
            return
        writer, self.writer = self.writer, None
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ssl.SSLError):
            # Peer already went away
            pass

    def _headers(self) -> List[Tuple[bytes, bytes]]:
        headers = self.request.headers
        encoded = [(k.encode("ascii"), str(v).encode("latin-1")) for k, v in headers.items()]
        lower_keys = {k.lower() for k in headers}
        if "host" not in lower_keys:
            encoded.insert(0, (b"Host", self.request.authority.encode("ascii")))
        if "connection" not in lower_keys:
            encoded.append((b"Connection", b"close"))
        return encoded

    async def _send_event(self, event: h11.Event) -> None:
        data = self.h11_conn.send(event)
        if data:
            self.writer.write(data)

    async def send_request(self) -> None:
        await self._send_event(
            h11.Request(
                method=self.request.method.encode("ascii"),
                target=self.request.path.encode("ascii"),
                headers=self._headers(),
            )
        )
        if self.request.body:
            await self._send_event(h11.Data(data=self.request.body))
        await self._send_event(h11.EndOfMessage())
        await self.writer.drain()

    async def _read_event(self) -> h11.Event:
        while True:
            event = self.h11_conn.next_event()
            if event is h11.NEED_DATA:
                chunk = await self.reader.read(READ_BUFFER_SIZE)
                self.h11_conn.receive_data(chunk)
                continue
            return event

    async def read_response(self, on_ack: AckCallback, on_chunk: Optional[ChunkCallback]) -> RawResponse:
        while True:
            event = await self._read_event()
            if isinstance(event, h11.Response):
                break
            if isinstance(event, h11.InformationalResponse):
                continue
            if isinstance(event, h11.ConnectionClosed):
                raise ResponseError("Connection closed before response")

        on_ack()
        status_code = event.status_code
        headers = _decode_headers(list(event.headers))
        reason = event.reason.decode("ascii", errors="replace")

        # Rejected responses are always buffered so they can be classified.
        streaming = on_chunk is not None and status_code < 400
        body_buffer = bytearray()
        while True:
            event = await self._read_event()
            if isinstance(event, h11.Data):
                if streaming:
                    await deliver_chunk(on_chunk, bytes(event.data))
                else:
                    body_buffer.extend(event.data)
            elif isinstance(event, (h11.EndOfMessage, h11.ConnectionClosed)):
                break

        return RawResponse(
            status_code=status_code,
            headers=headers,
            body=None if streaming else bytes(body_buffer),
            reason=reason,
        )


class SocketTransport(Transport):
    """
    Streaming transport speaking HTTP/1.1 over asyncio streams with h11.

    Body chunks can be handed to an ``on_chunk`` callback as they arrive
    instead of being accumulated.
    """

    supports_streaming = True
    default_verbose = True

    async def send(
        self,
        request: RequestDescriptor,
        *,
        on_ack: AckCallback,
        on_chunk: Optional[ChunkCallback] = None,
        options: Optional[Options] = None,
    ) -> RawResponse:
        verify = options.reject_unauthorized if options is not None else True
        exchange = _Exchange(request, verify=verify)
        try:
            await exchange.connect()
            await exchange.send_request()
            return await exchange.read_response(on_ack, on_chunk)
        except h11.LocalProtocolError as exc:
            raise RequestError(f"Could not send request to {request.authority}: {exc}") from exc
        except h11.RemoteProtocolError as exc:
            raise ResponseError(f"Malformed response from {request.authority}: {exc}") from exc
        finally:
            await exchange.close()


__all__ = ["SocketTransport"]
