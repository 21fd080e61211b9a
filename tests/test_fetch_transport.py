import json

import httpx
import pytest

from webfetch import Client, FetchTransport, HTTPStatusError, NetworkError, build_request


def _mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_transport_sends_normalized_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = request.content
        seen["content_type"] = request.headers["content-type"]
        return httpx.Response(200, json={"ok": True})

    async with _mock_client(handler) as http:
        client = Client(transport=FetchTransport(client=http))
        result = await client.post("/items", "https://api.example.com", {"name": "x"})

    assert result == {"ok": True, "statusCode": 200}
    assert seen["method"] == "POST"
    assert seen["url"] == "https://api.example.com/items"
    assert json.loads(seen["body"]) == {"name": "x"}
    assert seen["content_type"] == "application/json"


@pytest.mark.asyncio
async def test_fetch_transport_acks_and_returns_raw_body():
    acks = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="plain")

    req = build_request("GET", "/x", "api.example.com", {"q": 1})
    async with _mock_client(handler) as http:
        raw = await FetchTransport(client=http).send(req, on_ack=lambda: acks.append(True))
    assert acks == [True]
    assert raw.status_code == 200
    assert raw.body == b"plain"


@pytest.mark.asyncio
async def test_fetch_transport_http_error_fields():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"reason": "missing"})

    async with _mock_client(handler) as http:
        client = Client(transport=FetchTransport(client=http))
        with pytest.raises(HTTPStatusError) as info:
            await client.get("/nope", "api.example.com")
    assert info.value.status_code == 404
    assert info.value["reason"] == "missing"
    assert info.value["statusCode"] == 404


@pytest.mark.asyncio
async def test_fetch_transport_connect_error_retried_then_raised():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    async with _mock_client(handler) as http:
        client = Client(transport=FetchTransport(client=http))
        with pytest.raises(NetworkError) as info:
            await client.get("/x", "api.example.com", options={"retry": 2})
    assert len(calls) == 3
    assert "connection refused" in str(info.value)
    assert isinstance(info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_fetch_transport_is_quiet_by_default():
    transport = FetchTransport()
    assert transport.default_verbose is False
    assert transport.supports_streaming is False
    req = build_request("GET", "/x", "api.example.com")
    with pytest.raises(ValueError):
        await transport.send(req, on_ack=lambda: None, on_chunk=lambda chunk: None)


@pytest.fixture
def recorded_clients(monkeypatch):
    """Route the transport's own short-lived clients to a mock, recording how they are built."""
    built = []
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"host": request.url.host})

    def factory(**kwargs):
        built.append(kwargs)
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", factory)
    return built


@pytest.mark.asyncio
async def test_fetch_transport_ignores_proxy_environment(monkeypatch, recorded_clients):
    monkeypatch.setenv("HTTP_PROXY", "http://127.0.0.1:9")
    monkeypatch.setenv("HTTPS_PROXY", "http://127.0.0.1:9")
    monkeypatch.setenv("ALL_PROXY", "http://127.0.0.1:9")

    result = await Client(transport=FetchTransport()).get("/echo", "http://service.local")

    assert result == {"host": "service.local", "statusCode": 200}
    assert recorded_clients[0]["trust_env"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("reject_unauthorized", [True, False])
async def test_fetch_transport_verify_follows_reject_unauthorized(recorded_clients, reject_unauthorized):
    client = Client(transport=FetchTransport())
    await client.get("/x", "https://service.local", options={"rejectUnauthorized": reject_unauthorized})
    assert recorded_clients[0]["verify"] is reject_unauthorized
