import asyncio
import ssl

import h11
import pytest

from webfetch import Client, NetworkError, RequestError, SocketTransport, build_request
from webfetch.socket_transport import _Exchange, _get_ssl_context


class RecordingWriter:
    def __init__(self):
        self.data = bytearray()
        self.closed = False

    def write(self, data):
        self.data.extend(data)

    async def drain(self):
        pass

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


@pytest.fixture
def exchanges(monkeypatch):
    """Replace the network connect with canned in-memory streams and record each exchange."""
    seen = []

    async def connect(self):
        self.reader = asyncio.StreamReader()
        self.reader.feed_data(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\n{}")
        self.reader.feed_eof()
        self.writer = RecordingWriter()
        seen.append(self)

    monkeypatch.setattr(_Exchange, "connect", connect)
    return seen


def test_ssl_context_verifies_by_default():
    context = _get_ssl_context(True)
    assert context.verify_mode == ssl.CERT_REQUIRED
    assert context.check_hostname is True


def test_ssl_context_without_verification():
    context = _get_ssl_context(False)
    assert context.verify_mode == ssl.CERT_NONE
    assert context.check_hostname is False


def test_plain_http_exchange_has_no_ssl_context():
    req = build_request("GET", "/x", "http://127.0.0.1:8080")
    assert _Exchange(req).ssl_context is None


@pytest.mark.asyncio
@pytest.mark.parametrize("reject_unauthorized", [True, False])
async def test_reject_unauthorized_selects_ssl_context(exchanges, reject_unauthorized):
    client = Client(transport=SocketTransport(), options={"rejectUnauthorized": reject_unauthorized})
    result = await client.post("/x", "https://api.example.com", {"a": 1})
    assert result == {"statusCode": 200}
    assert exchanges[0].ssl_context is _get_ssl_context(reject_unauthorized)


@pytest.mark.asyncio
async def test_local_protocol_error_is_request_error(exchanges):
    req = build_request("POST", "/x", "http://h", {"a": 1}, {"Content-Length": "99"})
    with pytest.raises(RequestError) as info:
        await SocketTransport().send(req, on_ack=lambda: None)
    assert info.value.message.startswith("Could not send request to h:")
    assert isinstance(info.value.__cause__, h11.LocalProtocolError)
    assert exchanges[0].writer is None


@pytest.mark.asyncio
async def test_local_protocol_error_surfaces_through_client(exchanges):
    client = Client(transport=SocketTransport(), options={"verbose": False})
    with pytest.raises(NetworkError) as info:
        await client.post("/x", "http://h", {"a": 1}, headers={"Content-Length": "99"})
    assert str(info.value).startswith("Could not send request")
    assert isinstance(info.value.__cause__, RequestError)
