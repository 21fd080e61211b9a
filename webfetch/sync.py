"""
Blocking wrappers around the async request API.

Each wrapper drives the coroutine on a private event loop, so it is meant for
scripts and threads without a running loop. Inside a coroutine, await the
async functions from :mod:`webfetch` instead.
"""
import asyncio
import functools
import inspect
from typing import Any, Callable, Dict

from . import api


def async_to_sync(function: Callable[..., Any]) -> Callable[..., Any]:
    """
    Wrap a coroutine function so that calling it blocks until it finishes.

    Raises ``RuntimeError`` when called from a thread with a running loop.
    """
    if not inspect.iscoroutinefunction(function):
        raise TypeError(f"{function!r} is not a coroutine function")

    @functools.wraps(function)
    def async_to_sync_wrap(*args: Any, **kwargs: Any) -> Any:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError(
                f"webfetch.sync.{function.__name__}() cannot run inside an event loop; "
                f"await webfetch.{function.__name__}() instead"
            )
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(function(*args, **kwargs))
        finally:
            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                loop.close()

    return async_to_sync_wrap


def wrap_functions(namespace: Dict[str, Any], *names: str) -> None:
    """Publish blocking versions of the named coroutine functions into ``namespace``."""
    for name in names:
        namespace[name] = async_to_sync(getattr(api, name))


wrap_functions(globals(), "request", "get", "post", "put", "delete")

__all__ = ["async_to_sync", "request", "get", "post", "put", "delete"]
