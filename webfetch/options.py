from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Union


# Caller-facing spellings accepted for each field.
_ALIASES: Dict[str, str] = {
    "response": "response",
    "responseTimeoutMs": "response",
    "response_timeout_ms": "response",
    "deadline": "deadline",
    "deadlineTimeoutMs": "deadline",
    "deadline_timeout_ms": "deadline",
    "retry": "retry",
    "retryCount": "retry",
    "retry_count": "retry",
    "rejectUnauthorized": "reject_unauthorized",
    "reject_unauthorized": "reject_unauthorized",
    "useHttp": "use_http",
    "use_http": "use_http",
    "useInsecureTransport": "use_http",
    "use_insecure_transport": "use_http",
    "verbose": "verbose",
    "port": "port",
    "backoffFactor": "backoff_factor",
    "backoff_factor": "backoff_factor",
    "backoffMax": "backoff_max",
    "backoff_max": "backoff_max",
}


@dataclass(frozen=True)
class Options:
    response: float = 10000
    deadline: float = 60000
    retry: int = 0
    reject_unauthorized: bool = True
    use_http: bool = False
    verbose: Optional[bool] = None
    port: Optional[int] = None
    backoff_factor: float = 0.0
    backoff_max: float = 2.0

    def __post_init__(self) -> None:
        if self.response <= 0:
            raise ValueError(f"response timeout must be positive, got {self.response}")
        if self.deadline <= 0:
            raise ValueError(f"deadline timeout must be positive, got {self.deadline}")
        if self.retry < 0:
            object.__setattr__(self, "retry", 0)

    @classmethod
    def from_value(cls, value: Union["Options", Mapping[str, Any], None], base: Optional["Options"] = None) -> "Options":
        """
        Merge caller options over ``base`` (or the defaults).
        Unknown keys are ignored.
        """
        if isinstance(value, cls):
            return value
        base = base or cls()
        if not value:
            return base
        overrides: Dict[str, Any] = {}
        for key, item in value.items():
            name = _ALIASES.get(key)
            if name is None or item is None:
                continue
            overrides[name] = item
        return replace(base, **overrides)

    def with_defaults(self, *, verbose: bool) -> "Options":
        """Resolve fields the transport decides when the caller did not."""
        if self.verbose is not None:
            return self
        return replace(self, verbose=verbose)

    @property
    def response_timeout(self) -> float:
        """Response timeout in seconds."""
        return self.response / 1000.0

    @property
    def deadline_timeout(self) -> float:
        """Deadline timeout in seconds."""
        return self.deadline / 1000.0

    def iter_delays(self) -> Iterable[float]:
        for attempt in range(1, self.retry + 1):
            yield min(self.backoff_factor * (2 ** (attempt - 1)), self.backoff_max)

