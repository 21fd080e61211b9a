import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from .options import Options
from .descriptor import RequestDescriptor

ChunkCallback = Callable[[bytes], Union[None, Awaitable[None]]]
AckCallback = Callable[[], None]


@dataclass
class RawResponse:
    """Status, headers and (unless streamed to a callback) the full body."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    reason: Optional[str] = None

    def text(self, encoding: str = "utf-8") -> str:
        if not self.body:
            return ""
        try:
            return self.body.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            return self.body.decode("utf-8", errors="replace")


class Transport(ABC):
    """
    One way of putting a :class:`RequestDescriptor` on the wire.

    ``send`` must call ``on_ack`` once the status line and headers arrive and
    return the finished :class:`RawResponse`. Aborts arrive as cancellation of
    the ``send`` task; implementations release their socket or client when
    that happens. Transport failures propagate as exceptions.
    """

    #: Whether ``send`` accepts an ``on_chunk`` callback.
    supports_streaming: bool = False
    #: Value of ``Options.verbose`` when the caller leaves it unset.
    default_verbose: bool = False

    @abstractmethod
    async def send(
        self,
        request: RequestDescriptor,
        *,
        on_ack: AckCallback,
        on_chunk: Optional[ChunkCallback] = None,
        options: Optional[Options] = None,
    ) -> RawResponse:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


async def deliver_chunk(callback: ChunkCallback, chunk: bytes) -> None:
    result: Any = callback(chunk)
    if inspect.isawaitable(result):
        await result
