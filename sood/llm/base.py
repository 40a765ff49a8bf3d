import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx


MAX_RETRY_AFTER_S = 3600.0


@dataclass
class LLMResponse:
    text: str
    model: str
    tokens_used: int = 0


class LLMError(Exception):
    """The completion service failed or returned something unusable."""


class LLMRateLimitError(LLMError):
    """The completion service signalled quota exhaustion."""

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class LLMProvider(ABC):
    """Abstract interface for chat completion providers."""

    def __init__(
        self,
        model: str,
        endpoint: str,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        api_key: str = "",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @abstractmethod
    async def generate(self, messages: list[dict], model: str | None = None) -> LLMResponse:
        """Generate the next assistant turn for a list of role-tagged messages."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is reachable."""
        ...

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout or self.timeout, transport=self._transport)

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.status_code == 429:
            raise LLMRateLimitError(
                f"Rate limited by {resp.request.url.host}",
                retry_after=_parse_retry_after(resp.headers.get("retry-after")),
            )
        if resp.status_code >= 400:
            raise LLMError(f"HTTP {resp.status_code} from {resp.request.url.host}: {resp.text[:200]}")


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        # HTTP-date form is not worth supporting here
        return None
    if math.isnan(seconds):
        return None
    return min(max(0.0, seconds), MAX_RETRY_AFTER_S)
