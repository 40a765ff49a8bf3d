"""Conversation orchestration: persona prompt + session history -> completion -> optional speech."""

import asyncio
import logging
from dataclasses import dataclass, field

from ..errors import (
    MissingMessageError,
    OutOfRangeError,
    ProcessingError,
    UpstreamRateLimitedError,
    UpstreamUnavailableError,
)
from ..llm.base import LLMProvider, LLMResponse, LLMError, LLMRateLimitError
from ..memory.session_memory import SessionMemory, ChatMessage
from ..tts.base import SpeechSynthesizer, VoiceSettings
from .formatting import strip_emphasis, chunk_words
from .personas import PersonaRegistry

logger = logging.getLogger(__name__)

GREETING_REQUEST = "Hello, could you introduce yourself?"
INTRO_TEMPLATE = "Hello! I'm {name}. "


@dataclass
class ChatReply:
    text: str
    audio_chunks: list[bytes] = field(default_factory=list)


class ConversationOrchestrator:
    """Owns the per-session histories and drives the completion and speech collaborators."""

    def __init__(
        self,
        llm: LLMProvider,
        personas: PersonaRegistry,
        memory: SessionMemory,
        tts: SpeechSynthesizer | None = None,
        chunk_size: int = 50,
        rate_limit_retry_s: float = 30.0,
    ):
        self.llm = llm
        self.personas = personas
        self.memory = memory
        self.tts = tts
        self.chunk_size = chunk_size
        self.rate_limit_retry_s = rate_limit_retry_s

    # ── Sessions ─────────────────────────────────────────────────────────

    async def initialize_session(self, role: str, session_id: str) -> ChatReply:
        persona = self.personas.lookup(role)

        async with self.memory.lock(session_id):
            self.memory.reset(session_id)
            seed = [
                ChatMessage(role="system", content=persona.system_prompt),
                ChatMessage(role="user", content=GREETING_REQUEST),
            ]
            resp = await self._complete(seed)
            greeting = strip_emphasis(resp.text).strip()
            if not greeting:
                greeting = INTRO_TEMPLATE.format(name=persona.name).strip()
            self.memory.replace(session_id, seed + [ChatMessage(role="assistant", content=greeting)])

        logger.info("Session %s initialized as %s", session_id, persona.key)

        audio = []
        if self.tts:
            audio = await self._synthesize([greeting], persona.voice_id, None)
        return ChatReply(text=greeting, audio_chunks=audio)

    async def send_message(
        self,
        message: str | None,
        session_id: str,
        role: str | None = None,
        tts_enabled: bool = False,
        voice_settings: VoiceSettings | None = None,
        voice_id: str | None = None,
        model: str | None = None,
    ) -> ChatReply:
        if not message or not message.strip():
            raise MissingMessageError()
        if voice_settings is not None and not voice_settings.in_range():
            raise OutOfRangeError()

        persona = self.personas.resolve(role)

        async with self.memory.lock(session_id):
            history = self.memory.get_history(session_id)
            is_first_message = not history

            # The active persona's prompt is the only system message sent
            messages = [ChatMessage(role="system", content=persona.system_prompt)]
            messages += [m for m in history if m.role != "system"]
            messages.append(ChatMessage(role="user", content=message))

            resp = await self._complete(messages, model=model)
            reply = strip_emphasis(resp.text)

            if is_first_message and persona.name.lower() not in reply.lower():
                reply = INTRO_TEMPLATE.format(name=persona.name) + reply

            stored = self.memory.add(
                session_id,
                ChatMessage(role="user", content=message),
                ChatMessage(role="assistant", content=reply),
            )

        logger.info(
            "Session %s: %s replied with %d chars (history=%d, tokens=%d)",
            session_id, persona.key, len(reply), len(stored), resp.tokens_used,
        )

        audio = []
        if tts_enabled:
            if self.tts is None:
                logger.warning("TTS requested for session %s but no synthesizer is configured", session_id)
            else:
                chunks = chunk_words(reply, self.chunk_size)
                audio = await self._synthesize(chunks, voice_id or persona.voice_id, voice_settings)
        return ChatReply(text=reply, audio_chunks=audio)

    async def clear_session(self, session_id: str) -> None:
        async with self.memory.lock(session_id):
            if self.memory.clear(session_id):
                logger.info("Session %s cleared", session_id)

    def update_voice_settings(self, stability: float, similarity_boost: float) -> VoiceSettings:
        settings = VoiceSettings(stability=stability, similarity_boost=similarity_boost)
        if not settings.in_range():
            raise OutOfRangeError()
        return settings

    def history(self, session_id: str) -> list[ChatMessage]:
        return self.memory.get_history(session_id)

    # ── Collaborators ────────────────────────────────────────────────────

    async def _complete(self, messages: list[ChatMessage], model: str | None = None) -> LLMResponse:
        try:
            return await self.llm.generate([m.to_dict() for m in messages], model=model)
        except LLMRateLimitError as e:
            retry_after = e.retry_after if e.retry_after is not None else self.rate_limit_retry_s
            logger.warning("Completion API rate limited, retry after %.0fs", retry_after)
            raise UpstreamRateLimitedError(retry_after, detail=str(e)) from e
        except LLMError as e:
            logger.error("Completion API call failed: %s", e)
            raise UpstreamUnavailableError(detail=str(e)) from e
        except Exception as e:
            logger.exception("Unexpected error while requesting a completion")
            raise ProcessingError(detail=str(e)) from e

    async def _synthesize(
        self, chunks: list[str], voice_id: str, settings: VoiceSettings | None
    ) -> list[bytes]:
        """Synthesize chunks concurrently. Failed chunks are dropped, order is kept."""
        if not chunks:
            return []
        results = await asyncio.gather(
            *(self.tts.synthesize(chunk, voice_id or None, settings) for chunk in chunks),
            return_exceptions=True,
        )
        audio = []
        for i, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.error("Error generating speech for chunk %d/%d: %s", i + 1, len(chunks), result)
                continue
            audio.append(result)
        return audio
