import asyncio
import threading
from typing import Callable, List, Optional, Tuple


class CancellationToken:
    """
    Caller-owned abort signal shared by every attempt of a request.

    ``cancel()`` is idempotent and may be called from any thread; callbacks
    run on the event loop that registered them. The token is not tied to a
    loop, so one token can be created before ``asyncio.run`` and observed any
    number of times.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(webfetch.request("GET", "/slow", host, cancellation_token=token))
        token.cancel()
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._lock = threading.Lock()
        self._callbacks: List[Tuple[Optional[asyncio.AbstractEventLoop], Callable[[], None]]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        for loop, callback in callbacks:
            if loop is None or loop is current:
                callback()
            elif not loop.is_closed():
                loop.call_soon_threadsafe(callback)

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run ``callback`` once when the token is cancelled (immediately if it
        already is). Returns a function that removes the registration.
        """
        try:
            loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        entry = (loop, callback)
        with self._lock:
            registered = not self._cancelled
            if registered:
                self._callbacks.append(entry)
        if not registered:
            callback()

        def remove() -> None:
            with self._lock:
                try:
                    self._callbacks.remove(entry)
                except ValueError:
                    pass

        return remove

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        if self._cancelled:
            return
        future = asyncio.get_running_loop().create_future()

        def _wake() -> None:
            if not future.done():
                future.set_result(None)

        remove = self.add_callback(_wake)
        try:
            await future
        finally:
            remove()
