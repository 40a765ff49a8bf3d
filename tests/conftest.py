"""Shared fakes for the completion and speech collaborators."""

import pytest

from sood.core.orchestrator import ConversationOrchestrator
from sood.core.personas import PersonaRegistry
from sood.llm.base import LLMProvider, LLMResponse
from sood.memory.session_memory import SessionMemory
from sood.tts.base import SpeechSynthesizer, SpeechSynthesisError


class FakeLLM(LLMProvider):
    """Returns queued replies (or a fixed one) and records every request."""

    def __init__(self, replies=None, default="Sure, happy to help.", error: Exception | None = None):
        super().__init__(model="fake-model", endpoint="http://fake")
        self.replies = list(replies or [])
        self.default = default
        self.error = error
        self.calls: list[dict] = []

    async def generate(self, messages, model=None):
        self.calls.append({"messages": [dict(m) for m in messages], "model": model})
        if self.error:
            raise self.error
        text = self.replies.pop(0) if self.replies else self.default
        return LLMResponse(text=text, model=model or self.model, tokens_used=len(text.split()))

    async def health_check(self):
        return True


class FakeTTS(SpeechSynthesizer):
    """Returns b"audio-<n>" per call; chunks listed in fail_on raise instead."""

    def __init__(self, fail_on: set[int] | None = None, fail_all: bool = False):
        self.calls: list[dict] = []
        self.fail_on = fail_on or set()
        self.fail_all = fail_all

    async def synthesize(self, text, voice_id=None, settings=None):
        index = len(self.calls)
        self.calls.append({"text": text, "voice_id": voice_id, "settings": settings})
        if self.fail_all or index in self.fail_on:
            raise SpeechSynthesisError(f"chunk {index} failed")
        return f"audio-{index}".encode()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def tts():
    return FakeTTS()


@pytest.fixture
def personas():
    return PersonaRegistry()


@pytest.fixture
def orchestrator(llm, tts, personas):
    return ConversationOrchestrator(
        llm=llm,
        personas=personas,
        memory=SessionMemory(max_turns=10),
        tts=tts,
        chunk_size=50,
    )
