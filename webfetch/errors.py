from typing import Any, Dict, Optional


class WebFetchError(Exception):
    """Base exception for the webfetch package."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.fields: Dict[str, Any] = dict(fields or {})

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)


class UnsupportedMethodError(WebFetchError, ValueError):
    """Raised when the request method is not GET, POST, PUT or DELETE."""

    def __init__(self, method: str) -> None:
        super().__init__(f"Unsupported type: {method}")
        self.method = method


class RequestError(WebFetchError):
    """Raised when a request cannot be put on the wire as given."""


class ResponseError(WebFetchError):
    """Raised when a response cannot be read or parsed."""


class HTTPStatusError(WebFetchError):
    """Raised when the remote answered with a 4xx or 5xx status."""


class NetworkError(WebFetchError):
    """Raised when the transport failed before a response was classified."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message, status_code)
        self.code = code


class RequestTimeoutError(WebFetchError, TimeoutError):
    """Raised when the response or deadline budget of an attempt ran out."""

    def __init__(self, kind: str, limit_ms: float) -> None:
        if kind == "response":
            message = f"Web Fetch Client Timeout. Response passed {limit_ms} ms"
        else:
            message = f"Web Fetch Client Timeout. Deadline passed {limit_ms} ms"
        super().__init__(message, 408)
        self.kind = kind
        self.limit_ms = limit_ms


class AbortedError(WebFetchError):
    """Raised when the caller cancelled the request. Never retried."""

    def __init__(self, message: str = "Request aborted by caller") -> None:
        super().__init__(message, 499)
