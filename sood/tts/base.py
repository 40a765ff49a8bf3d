from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class VoiceSettings:
    stability: float = 0.5
    similarity_boost: float = 0.5

    def in_range(self) -> bool:
        return 0 <= self.stability <= 1 and 0 <= self.similarity_boost <= 1


class SpeechSynthesisError(Exception):
    pass


class SpeechSynthesizer(ABC):
    """Abstract interface for text-to-speech providers."""

    @abstractmethod
    async def synthesize(
        self, text: str, voice_id: str | None = None, settings: VoiceSettings | None = None
    ) -> bytes:
        """Return encoded audio (audio/mpeg) for the text."""
        ...
