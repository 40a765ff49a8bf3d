import httpx
import logging

from .base import LLMProvider, LLMResponse, LLMError

logger = logging.getLogger(__name__)


class OllamaProvider(LLMProvider):
    """Ollama local model provider (http://localhost:11434 by default)."""

    async def generate(self, messages: list[dict], model: str | None = None) -> LLMResponse:
        model = model or self.model
        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }

        try:
            async with self._client() as client:
                resp = await client.post(f"{self.endpoint}/api/chat", json=payload)
        except httpx.HTTPError as e:
            raise LLMError(f"Ollama request failed: {e}") from e

        self._raise_for_status(resp)

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError(f"Malformed Ollama response: {e}") from e

        text = data.get("message", {}).get("content", "")
        tokens = data.get("eval_count", 0)
        return LLMResponse(text=text, model=model, tokens_used=tokens)

    async def health_check(self) -> bool:
        try:
            async with self._client(timeout=5.0) as client:
                resp = await client.get(f"{self.endpoint}/api/tags")
                return resp.status_code == 200
        except Exception:
            logger.warning("Ollama not reachable at %s", self.endpoint)
            return False
