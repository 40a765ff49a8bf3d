import httpx
import logging

from .base import LLMProvider, LLMResponse, LLMError

logger = logging.getLogger(__name__)


class OpenAICompatProvider(LLMProvider):
    """Generic OpenAI-compatible API provider (works with LM Studio, LocalAI, vLLM, etc.)."""

    def _headers(self) -> dict:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    async def generate(self, messages: list[dict], model: str | None = None) -> LLMResponse:
        model = model or self.model
        payload = {
            "model": model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        try:
            async with self._client() as client:
                resp = await client.post(
                    f"{self.endpoint}/v1/chat/completions", json=payload, headers=self._headers()
                )
        except httpx.HTTPError as e:
            raise LLMError(f"Request to {self.endpoint} failed: {e}") from e

        self._raise_for_status(resp)

        try:
            data = resp.json()
            choice = data["choices"][0]
            text = choice["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Malformed completion response: {e}") from e

        tokens = data.get("usage", {}).get("total_tokens", 0)
        return LLMResponse(text=text, model=model, tokens_used=tokens)

    async def health_check(self) -> bool:
        try:
            async with self._client(timeout=5.0) as client:
                resp = await client.get(f"{self.endpoint}/v1/models", headers=self._headers())
                return resp.status_code == 200
        except Exception:
            logger.warning("OpenAI-compat endpoint not reachable at %s", self.endpoint)
            return False
