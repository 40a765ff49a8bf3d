"""Tests for the completion providers and the ElevenLabs synthesizer against mocked HTTP."""

import asyncio
import json

import httpx
import pytest

from sood.llm.base import LLMError, LLMRateLimitError
from sood.llm.groq_provider import GroqProvider
from sood.llm.ollama_provider import OllamaProvider
from sood.llm.openai_compat import OpenAICompatProvider
from sood.tts.base import SpeechSynthesisError, VoiceSettings
from sood.tts.elevenlabs import ElevenLabsSynthesizer

MESSAGES = [{"role": "system", "content": "be nice"}, {"role": "user", "content": "hi"}]


def transport(handler, seen: list):
    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)
    return httpx.MockTransport(record)


class TestOpenAICompat:
    def test_generate(self):
        seen = []
        reply = {"choices": [{"message": {"content": "hello"}}], "usage": {"total_tokens": 12}}
        llm = GroqProvider(
            model="llama-3.3-70b-versatile",
            api_key="secret",
            transport=transport(lambda r: httpx.Response(200, json=reply), seen),
        )
        resp = asyncio.run(llm.generate(MESSAGES))

        assert resp.text == "hello"
        assert resp.tokens_used == 12
        request = seen[0]
        assert str(request.url) == "https://api.groq.com/openai/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body["messages"] == MESSAGES
        assert body["model"] == "llama-3.3-70b-versatile"
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 1024

    def test_model_override(self):
        seen = []
        reply = {"choices": [{"message": {"content": "x"}}]}
        llm = OpenAICompatProvider(
            model="a", endpoint="http://local/", transport=transport(lambda r: httpx.Response(200, json=reply), seen)
        )
        resp = asyncio.run(llm.generate(MESSAGES, model="b"))
        assert resp.model == "b"
        assert json.loads(seen[0].content)["model"] == "b"
        assert "authorization" not in seen[0].headers

    def test_rate_limit(self):
        llm = GroqProvider(
            model="m", transport=transport(lambda r: httpx.Response(429, headers={"retry-after": "17"}), [])
        )
        with pytest.raises(LLMRateLimitError) as exc:
            asyncio.run(llm.generate(MESSAGES))
        assert exc.value.retry_after == 17

    def test_rate_limit_without_hint(self):
        llm = GroqProvider(model="m", transport=transport(lambda r: httpx.Response(429), []))
        with pytest.raises(LLMRateLimitError) as exc:
            asyncio.run(llm.generate(MESSAGES))
        assert exc.value.retry_after is None

    @pytest.mark.parametrize("header, expected", [
        ("0.5", 0.5),
        ("-3", 0.0),
        ("inf", 3600.0),
        ("99999999", 3600.0),
        ("nan", None),
        ("Wed, 21 Oct 2015 07:28:00 GMT", None),
    ])
    def test_rate_limit_hint_is_clamped(self, header, expected):
        llm = GroqProvider(
            model="m", transport=transport(lambda r: httpx.Response(429, headers={"retry-after": header}), [])
        )
        with pytest.raises(LLMRateLimitError) as exc:
            asyncio.run(llm.generate(MESSAGES))
        assert exc.value.retry_after == expected

    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="oops"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, text="not json"),
    ])
    def test_failures_raise_llm_error(self, response):
        llm = GroqProvider(model="m", transport=transport(lambda r: response, []))
        with pytest.raises(LLMError) as exc:
            asyncio.run(llm.generate(MESSAGES))
        assert not isinstance(exc.value, LLMRateLimitError)

    def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        llm = GroqProvider(model="m", transport=httpx.MockTransport(refuse))
        with pytest.raises(LLMError):
            asyncio.run(llm.generate(MESSAGES))

    def test_health_check(self):
        ok = GroqProvider(model="m", transport=transport(lambda r: httpx.Response(200, json={}), []))
        down = GroqProvider(model="m", transport=transport(lambda r: httpx.Response(503), []))
        assert asyncio.run(ok.health_check()) is True
        assert asyncio.run(down.health_check()) is False


class TestOllama:
    def test_generate(self):
        seen = []
        reply = {"message": {"content": "hey"}, "eval_count": 5}
        llm = OllamaProvider(
            model="llama3.2:3b", endpoint="http://localhost:11434",
            transport=transport(lambda r: httpx.Response(200, json=reply), seen),
        )
        resp = asyncio.run(llm.generate(MESSAGES))
        assert resp.text == "hey"
        assert resp.tokens_used == 5
        body = json.loads(seen[0].content)
        assert seen[0].url.path == "/api/chat"
        assert body["stream"] is False
        assert body["options"]["num_predict"] == 1024

    def test_rate_limit(self):
        llm = OllamaProvider(model="m", endpoint="http://x", transport=transport(lambda r: httpx.Response(429), []))
        with pytest.raises(LLMRateLimitError):
            asyncio.run(llm.generate(MESSAGES))


class TestElevenLabs:
    def test_synthesize(self):
        seen = []
        tts = ElevenLabsSynthesizer(
            api_key="xi", default_voice_id="default-voice",
            transport=transport(lambda r: httpx.Response(200, content=b"MP3"), seen),
        )
        audio = asyncio.run(tts.synthesize("hello there", settings=VoiceSettings(0.2, 0.8)))

        assert audio == b"MP3"
        request = seen[0]
        assert str(request.url) == "https://api.elevenlabs.io/v1/text-to-speech/default-voice"
        assert request.headers["xi-api-key"] == "xi"
        assert request.headers["accept"] == "audio/mpeg"
        body = json.loads(request.content)
        assert body["text"] == "hello there"
        assert body["model_id"] == "eleven_turbo_v2"
        assert body["voice_settings"] == {"stability": 0.2, "similarity_boost": 0.8}

    def test_explicit_voice_and_zero_settings(self):
        seen = []
        tts = ElevenLabsSynthesizer(
            api_key="xi", transport=transport(lambda r: httpx.Response(200, content=b"a"), seen)
        )
        asyncio.run(tts.synthesize("x", voice_id="v2", settings=VoiceSettings(0, 0)))
        assert seen[0].url.path.endswith("/v2")
        assert json.loads(seen[0].content)["voice_settings"] == {"stability": 0, "similarity_boost": 0}

    def test_voice_required(self):
        tts = ElevenLabsSynthesizer(api_key="xi", transport=transport(lambda r: httpx.Response(200), []))
        with pytest.raises(SpeechSynthesisError):
            asyncio.run(tts.synthesize("x"))

    @pytest.mark.parametrize("response,message", [
        (httpx.Response(401, json={"detail": {"status": "invalid_api_key"}}), "invalid_api_key"),
        (httpx.Response(422, json={"detail": "bad text"}), "bad text"),
        (httpx.Response(500, text="boom"), "Internal Server Error"),
    ])
    def test_api_errors(self, response, message):
        tts = ElevenLabsSynthesizer(api_key="xi", default_voice_id="v", transport=transport(lambda r: response, []))
        with pytest.raises(SpeechSynthesisError, match=message):
            asyncio.run(tts.synthesize("x"))
