import httpx
import logging

from .base import SpeechSynthesizer, SpeechSynthesisError, VoiceSettings

logger = logging.getLogger(__name__)


class ElevenLabsSynthesizer(SpeechSynthesizer):
    """ElevenLabs text-to-speech (https://api.elevenlabs.io)."""

    def __init__(
        self,
        api_key: str,
        default_voice_id: str = "",
        model_id: str = "eleven_turbo_v2",
        endpoint: str = "https://api.elevenlabs.io",
        default_settings: VoiceSettings | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.default_voice_id = default_voice_id
        self.model_id = model_id
        self.endpoint = endpoint.rstrip("/")
        self.default_settings = default_settings or VoiceSettings()
        self.timeout = timeout
        self._transport = transport

    async def synthesize(
        self, text: str, voice_id: str | None = None, settings: VoiceSettings | None = None
    ) -> bytes:
        voice = voice_id or self.default_voice_id
        if not voice:
            raise SpeechSynthesisError(
                "Voice ID is required. Set ELEVENLABS_VOICE_ID or provide a voice ID."
            )

        settings = settings or self.default_settings
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": settings.stability,
                "similarity_boost": settings.similarity_boost,
            },
        }
        headers = {
            "Accept": "audio/mpeg",
            "xi-api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.endpoint}/v1/text-to-speech/{voice}", json=payload, headers=headers
                )
        except httpx.HTTPError as e:
            raise SpeechSynthesisError(f"ElevenLabs request failed: {e}") from e

        if resp.status_code != 200:
            raise SpeechSynthesisError(f"ElevenLabs API error: {_error_detail(resp)}")

        logger.debug("Synthesized %d chars into %d bytes (voice=%s)", len(text), len(resp.content), voice)
        return resp.content


def _error_detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    detail = data.get("detail") if isinstance(data, dict) else None
    if isinstance(detail, dict):
        detail = detail.get("message") or detail.get("status")
    return str(detail or resp.reason_phrase or resp.status_code)
