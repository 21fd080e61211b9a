import errno
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from .errors import (
    AbortedError,
    HTTPStatusError,
    NetworkError,
    RequestTimeoutError,
    WebFetchError,
)
from .descriptor import JSON_TYPE, RequestDescriptor
from .transport import RawResponse


@dataclass(frozen=True)
class Success:
    payload: Dict[str, Any]
    status_code: int


Failure = Union[HTTPStatusError, NetworkError, RequestTimeoutError, AbortedError]
Outcome = Union[Success, Failure]

_NOT_JSON = object()


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return _NOT_JSON


def _shape_payload(raw: RawResponse, request: RequestDescriptor) -> Tuple[Dict[str, Any], bool]:
    """Build the caller-facing dict for a response body and say whether it was JSON."""
    status_code = raw.status_code
    if raw.body is None:
        return {"statusCode": status_code}, False
    text = raw.text()
    if request.headers.get("Accept") == JSON_TYPE:
        parsed = _parse_json(text)
        if isinstance(parsed, dict):
            if "statusCode" not in parsed:
                parsed["statusCode"] = status_code
            return parsed, True
        if parsed is not _NOT_JSON and parsed is not None:
            return {"data": parsed, "statusCode": status_code}, True
    return {"data": text, "statusCode": status_code}, False


def classify_response(raw: RawResponse, request: RequestDescriptor) -> Union[Success, HTTPStatusError]:
    """Turn a finished transport response into a success or an HTTP rejection."""
    payload, is_json = _shape_payload(raw, request)
    if raw.status_code < 400:
        return Success(payload=payload, status_code=raw.status_code)

    if not is_json:
        message = (
            f"Received {raw.status_code} code. Response treated as rejection. "
            f"Full response: {payload.get('data', '')}"
        )
    else:
        message = payload.get("message") if isinstance(payload.get("message"), str) else None
        message = message or f"Received not OK status code with call to {request.url}"
    return HTTPStatusError(message, raw.status_code, payload)


def classify_exception(exc: BaseException) -> Union[NetworkError, AbortedError, RequestTimeoutError]:
    """Wrap a transport-level exception, keeping its message and codes."""
    if isinstance(exc, (NetworkError, AbortedError, RequestTimeoutError)):
        return exc
    code: Optional[str] = None
    if isinstance(exc, OSError) and exc.errno is not None:
        code = errno.errorcode.get(exc.errno)
    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int):
        status_code = None
    message = str(exc) or type(exc).__name__
    if isinstance(exc, WebFetchError):
        message = exc.message
    error = NetworkError(message, status_code=status_code, code=code)
    error.__cause__ = exc
    return error