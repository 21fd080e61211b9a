import asyncio

import pytest

from webfetch.transport import RawResponse, Transport, deliver_chunk


class ScriptedTransport(Transport):
    """Transport double that plays one scripted step per send() call."""

    supports_streaming = True
    default_verbose = False

    def __init__(self, *steps):
        self.steps = list(steps)
        self.requests = []
        self.cancelled = 0
        self.closed = False

    @property
    def calls(self):
        return len(self.requests)

    async def send(self, request, *, on_ack, on_chunk=None, options=None):
        self.requests.append(request)
        step = self.steps[min(len(self.requests), len(self.steps)) - 1]
        try:
            return await step(on_ack, on_chunk)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise

    async def aclose(self):
        self.closed = True


def respond(status=200, body=b'{"ok": true}', delay=0.0):
    async def step(on_ack, on_chunk):
        if delay:
            await asyncio.sleep(delay)
        on_ack()
        return RawResponse(status, {}, body)

    return step


def fail(exc):
    async def step(on_ack, on_chunk):
        raise exc

    return step


def hang():
    async def step(on_ack, on_chunk):
        await asyncio.sleep(3600)

    return step


def ack_then_hang():
    async def step(on_ack, on_chunk):
        on_ack()
        await asyncio.sleep(3600)

    return step


def stream(*chunks, delay=0.0):
    async def step(on_ack, on_chunk):
        on_ack()
        for chunk in chunks:
            if delay:
                await asyncio.sleep(delay)
            await deliver_chunk(on_chunk, chunk)
        return RawResponse(200, {}, None)

    return step


def stream_then_hang(*chunks):
    async def step(on_ack, on_chunk):
        on_ack()
        for chunk in chunks:
            await deliver_chunk(on_chunk, chunk)
        await asyncio.sleep(3600)

    return step


class Script:
    transport = ScriptedTransport
    respond = staticmethod(respond)
    fail = staticmethod(fail)
    hang = staticmethod(hang)
    ack_then_hang = staticmethod(ack_then_hang)
    stream = staticmethod(stream)
    stream_then_hang = staticmethod(stream_then_hang)


@pytest.fixture
def script():
    return Script
