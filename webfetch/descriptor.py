import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from urllib.parse import quote, urlencode

from .errors import UnsupportedMethodError
from .options import Options

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")
BODY_METHODS = ("POST", "PUT", "DELETE")
JSON_TYPE = "application/json"

# Characters encodeURIComponent leaves alone besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"

BodyType = Union[Mapping[str, Any], bytes, bytearray, memoryview, str, None]


@dataclass(frozen=True)
class RequestDescriptor:
    method: str
    scheme: str
    host: str
    port: int
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def authority(self) -> str:
        if (self.scheme, self.port) in (("http", 80), ("https", 443)):
            return self.host
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.authority}{self.path}"

    @property
    def use_ssl(self) -> bool:
        return self.scheme == "https"


def encode_component(value: Any) -> str:
    """Percent-encode a query key or value the way ``encodeURIComponent`` does."""
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif value is None:
        text = "null"
    elif isinstance(value, (dict, list, tuple)):
        text = json.dumps(value, separators=(",", ":"))
    else:
        text = str(value)
    return quote(text, safe=_URI_COMPONENT_SAFE)


def build_query(params: Mapping[str, Any]) -> str:
    return "&".join(f"{encode_component(k)}={encode_component(v)}" for k, v in params.items())


def _parse_port(text: str, host: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"Invalid port in host {host!r}") from None


def split_host(host: str, use_http: bool) -> Tuple[str, str, Optional[int], str]:
    """
    Return ``(scheme, hostname, port, base_path)`` for a host that may carry a
    scheme prefix and a base path, e.g. ``https://api.example.com:8443/v1``.
    """
    original = host
    host = host.strip()
    lowered = host.lower()
    if lowered.startswith("http://"):
        scheme, host = "http", host[len("http://"):]
    elif lowered.startswith("https://"):
        scheme, host = "https", host[len("https://"):]
    else:
        scheme = "http" if use_http else "https"
    host, slash, rest = host.partition("/")
    base_path = ("/" + rest).rstrip("/") if slash else ""
    if not host:
        raise ValueError("Host must not be empty")
    port: Optional[int] = None
    if host.startswith("["):
        # IPv6 literal, optionally followed by :port
        end = host.find("]")
        if end != -1 and host[end + 1:end + 2] == ":":
            port = _parse_port(host[end + 2:], original)
            host = host[:end + 1]
    elif host.count(":") == 1:
        host, _, port_text = host.partition(":")
        port = _parse_port(port_text, original)
    return scheme, host, port, base_path


def _encode_body(body: BodyType, content_type: str) -> bytes:
    # Pre-encoded payloads go out untouched whatever the content type.
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if JSON_TYPE in content_type:
        return json.dumps(body, separators=(",", ":")).encode("utf-8")
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, Mapping):
        return urlencode({k: str(v) for k, v in body.items() if v is not None}).encode("utf-8")
    raise TypeError(f"Unsupported body type for {content_type!r}: {type(body).__name__}")


def build_request(
    method: str,
    path: str,
    host: str,
    body: BodyType = None,
    headers: Optional[Mapping[str, str]] = None,
    options: Union[Options, Mapping[str, Any], None] = None,
) -> RequestDescriptor:
    """
    Normalize raw call inputs into a :class:`RequestDescriptor`.

    GET bodies become the query string; POST, PUT and DELETE bodies are
    serialized according to ``Content-Type``. ``Content-Type`` and ``Accept``
    default to JSON when those exact header keys are absent.
    """
    method = method.upper()
    if method not in SUPPORTED_METHODS:
        raise UnsupportedMethodError(method)

    opts = Options.from_value(options)
    if body is None:
        body = {}
    hdrs: Dict[str, str] = dict(headers or {})
    if not hdrs.get("Content-Type"):
        hdrs["Content-Type"] = JSON_TYPE
    if not hdrs.get("Accept"):
        hdrs["Accept"] = JSON_TYPE

    scheme, hostname, host_port, base_path = split_host(host, opts.use_http)
    port = opts.port or host_port or (443 if scheme == "https" else 80)

    target = path or "/"
    if not target.startswith("/"):
        target = "/" + target
    target = base_path + target

    payload = b""
    if method in BODY_METHODS:
        payload = _encode_body(body, hdrs["Content-Type"])
        if not hdrs.get("Content-Length"):
            hdrs["Content-Length"] = str(len(payload))
    else:
        if not isinstance(body, Mapping):
            raise TypeError("GET body must be a mapping of query parameters")
        if body:
            separator = "&" if "?" in target else "?"
            target = f"{target}{separator}{build_query(body)}"

    return RequestDescriptor(
        method=method,
        scheme=scheme,
        host=hostname,
        port=int(port),
        path=target,
        headers=hdrs,
        body=payload,
    )
