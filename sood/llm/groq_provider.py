from .openai_compat import OpenAICompatProvider

GROQ_ENDPOINT = "https://api.groq.com/openai"


class GroqProvider(OpenAICompatProvider):
    """Groq hosted models through their OpenAI-compatible API. Requires an API key."""

    def __init__(self, model: str, endpoint: str = GROQ_ENDPOINT, **kwargs):
        super().__init__(model=model, endpoint=endpoint or GROQ_ENDPOINT, **kwargs)
