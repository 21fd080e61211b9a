import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .cancellation import CancellationToken
from .errors import AbortedError, RequestTimeoutError
from .options import Options
from .outcome import Outcome, classify_exception, classify_response
from .descriptor import RequestDescriptor
from .transport import ChunkCallback, Transport, deliver_chunk


@dataclass
class AttemptState:
    """Mutable bookkeeping owned by exactly one running attempt."""

    ack_received: bool = False
    timed_out: bool = False
    settled: bool = False
    callback_error: Optional[BaseException] = None
    response_timer: Optional[asyncio.TimerHandle] = None
    deadline_timer: Optional[asyncio.TimerHandle] = None

    def cancel_response_timer(self) -> None:
        if self.response_timer is not None:
            self.response_timer.cancel()
            self.response_timer = None

    def cancel_deadline_timer(self) -> None:
        if self.deadline_timer is not None:
            self.deadline_timer.cancel()
            self.deadline_timer = None

    def cancel_timers(self) -> None:
        self.cancel_response_timer()
        self.cancel_deadline_timer()


class _Race:
    """
    First-settled-wins combinator for one attempt.

    Every waiter reports through :meth:`settle`; only the first report is
    kept and all timers are disarmed in the same step. All callbacks run on
    the event loop thread, so checking ``state.settled`` is enough to keep a
    late timer from touching a resolved attempt.
    """

    def __init__(self, state: AttemptState) -> None:
        self.state = state
        self.result: "asyncio.Future[Outcome]" = asyncio.get_running_loop().create_future()

    def settle(self, outcome: Outcome) -> None:
        if self.state.settled:
            return
        self.state.settled = True
        self.state.cancel_timers()
        self.result.set_result(outcome)

    def fail(self, exc: BaseException) -> None:
        if self.state.settled:
            return
        self.state.settled = True
        self.state.cancel_timers()
        self.result.set_exception(exc)

    def ack(self) -> None:
        # Flag and disarm together so the response timer never sees a stale flag.
        if self.state.settled or self.state.ack_received:
            return
        self.state.ack_received = True
        self.state.cancel_response_timer()

    def expire(self, kind: str, limit_ms: float) -> None:
        if self.state.settled:
            return
        if kind == "response" and self.state.ack_received:
            return
        self.state.timed_out = True
        self.settle(RequestTimeoutError(kind, limit_ms))


async def run_attempt(
    transport: Transport,
    request: RequestDescriptor,
    options: Options,
    token: Optional[CancellationToken] = None,
    on_chunk: Optional[ChunkCallback] = None,
    logger: Optional[logging.Logger] = None,
) -> Outcome:
    """
    Run one attempt and return its outcome.

    The transport call races a response timer (time to first byte), a
    deadline timer (time to full response) and the cancellation token. The
    first one to finish decides the outcome; the others are cancelled before
    this coroutine returns. Transport failures are returned, not raised; an
    exception raised by ``on_chunk`` itself propagates to the caller.
    """
    if token is not None and token.cancelled:
        return AbortedError()

    loop = asyncio.get_running_loop()
    state = AttemptState()
    race = _Race(state)

    state.response_timer = loop.call_later(options.response_timeout, race.expire, "response", options.response)
    state.deadline_timer = loop.call_later(options.deadline_timeout, race.expire, "deadline", options.deadline)

    forward_chunk: Optional[ChunkCallback] = None
    if on_chunk is not None:
        caller_chunk = on_chunk

        async def forward_chunk(chunk: bytes) -> None:
            try:
                await deliver_chunk(caller_chunk, chunk)
            except Exception as exc:
                state.callback_error = exc
                raise

    async def _transport_waiter() -> None:
        try:
            raw = await transport.send(request, on_ack=race.ack, on_chunk=forward_chunk, options=options)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if state.callback_error is not None:
                # The caller's own callback failed; that is not a transport outcome.
                race.fail(state.callback_error)
                return
            if logger is not None:
                logger.debug(f"{request.method} {request.url} raised {exc!r}")
            race.settle(classify_exception(exc))
            return
        if logger is not None:
            logger.debug(f"{request.method} {request.url} -> {raw.status_code} {raw.reason or ''}")
        race.ack()
        race.settle(classify_response(raw, request))

    task = asyncio.ensure_future(_transport_waiter())
    remove_abort: Callable[[], None] = (lambda: None)
    if token is not None:
        remove_abort = token.add_callback(lambda: race.settle(AbortedError()))

    try:
        return await race.result
    finally:
        state.settled = True
        state.cancel_timers()
        remove_abort()
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


__all__ = ["AttemptState", "run_attempt"]
