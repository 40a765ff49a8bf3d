import base64
import logging
import math

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from ..config import AppConfig
from ..core.orchestrator import ConversationOrchestrator, ChatReply
from ..core.personas import PersonaRegistry
from ..errors import SoodError, UpstreamRateLimitedError
from ..llm.base import LLMProvider
from ..llm.groq_provider import GroqProvider
from ..llm.ollama_provider import OllamaProvider
from ..llm.openai_compat import OpenAICompatProvider
from ..memory.session_memory import SessionMemory
from ..tts.base import SpeechSynthesizer, VoiceSettings
from ..tts.elevenlabs import ElevenLabsSynthesizer
from .rate_limit import RateLimitService, enforce_rate_limit, set_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])

TRANSCRIPTION_PLACEHOLDER = "Audio received and processed"

# ── Global state ────────────────────────────────────────────────────────────

_config: AppConfig = AppConfig()
_orchestrator: ConversationOrchestrator | None = None


def init_llm(config: AppConfig) -> LLMProvider:
    llm_cfg = config.llm

    providers = {
        "groq": GroqProvider,
        "openai_compat": OpenAICompatProvider,
        "ollama": OllamaProvider,
    }

    cls = providers.get(llm_cfg.provider)
    if cls is None:
        logger.warning("Unknown LLM provider %r, falling back to groq", llm_cfg.provider)
        cls = GroqProvider
    if cls is GroqProvider and not llm_cfg.api_key:
        logger.warning("GROQ_API_KEY is not set; completion requests will be rejected")

    llm = cls(
        model=llm_cfg.model,
        endpoint=llm_cfg.endpoint,
        temperature=llm_cfg.temperature,
        max_tokens=llm_cfg.max_tokens,
        api_key=llm_cfg.api_key,
        timeout=llm_cfg.timeout_s,
    )
    logger.info("LLM initialized: provider=%s model=%s endpoint=%s", llm_cfg.provider, llm_cfg.model, llm.endpoint)
    return llm


def init_tts(config: AppConfig) -> SpeechSynthesizer | None:
    tts_cfg = config.tts
    if not tts_cfg.active:
        logger.info("Text-to-speech disabled (enabled=%s, api key set=%s)", tts_cfg.enabled, bool(tts_cfg.api_key))
        return None

    tts = ElevenLabsSynthesizer(
        api_key=tts_cfg.api_key,
        default_voice_id=tts_cfg.default_voice_id,
        model_id=tts_cfg.model_id,
        endpoint=tts_cfg.endpoint,
        default_settings=VoiceSettings(tts_cfg.stability, tts_cfg.similarity_boost),
        timeout=tts_cfg.timeout_s,
    )
    logger.info("Text-to-speech initialized: model=%s", tts_cfg.model_id)
    return tts


def init_orchestrator(
    config: AppConfig,
    llm: LLMProvider,
    tts: SpeechSynthesizer | None = None,
) -> ConversationOrchestrator:
    global _config
    _config = config
    orchestrator = ConversationOrchestrator(
        llm=llm,
        personas=PersonaRegistry(voice_overrides=config.tts.voices),
        memory=SessionMemory(max_turns=config.history.max_turns),
        tts=tts,
        chunk_size=config.tts.chunk_words,
        rate_limit_retry_s=config.llm.rate_limit_retry_s,
    )
    set_orchestrator(orchestrator)
    set_rate_limiter(RateLimitService(
        limit=config.server.rate_limit_requests,
        window=config.server.rate_limit_window_s,
        trust_proxy=config.server.trust_proxy,
    ))
    logger.info("Orchestrator ready: history cap=%d, tts=%s", config.history.max_turns, tts is not None)
    return orchestrator


def set_orchestrator(orchestrator: ConversationOrchestrator | None) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> ConversationOrchestrator:
    if _orchestrator is None:
        raise HTTPException(503, "Chat service is not initialized.")
    return _orchestrator


# ── Request/Response models ────────────────────────────────────────────────

class InitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: str = ""
    session_id: str = Field("default", alias="sessionId")


class InitResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    audio_chunks: list[str] = Field(default_factory=list, alias="audioChunks")


class VoiceSettingsModel(BaseModel):
    stability: float | None = None
    similarity_boost: float | None = None


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    message: str | None = ""
    session_id: str = Field("default", alias="sessionId")
    selected_role: str | None = Field(None, alias="selectedRole")
    tts_enabled: bool = Field(False, alias="ttsEnabled")
    voice_settings: VoiceSettingsModel | None = Field(None, alias="voiceSettings")
    voice_id: str | None = Field(None, alias="voiceId")
    model: str | None = None


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    audio_chunks: list[str] = Field(default_factory=list, alias="audioChunks")


class VoiceSettingsRequest(BaseModel):
    stability: float
    similarity_boost: float


class ClearHistoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str | None = Field(None, alias="sessionId")


# ── Helpers ────────────────────────────────────────────────────────────────

def _encode_audio(reply: ChatReply) -> list[str]:
    return [f"data:audio/mpeg;base64,{base64.b64encode(chunk).decode('ascii')}" for chunk in reply.audio_chunks]


def _voice_settings(req: ChatRequest) -> VoiceSettings | None:
    if req.voice_settings is None:
        return None
    defaults = VoiceSettings(_config.tts.stability, _config.tts.similarity_boost)
    return VoiceSettings(
        stability=defaults.stability if req.voice_settings.stability is None else req.voice_settings.stability,
        similarity_boost=(
            defaults.similarity_boost
            if req.voice_settings.similarity_boost is None
            else req.voice_settings.similarity_boost
        ),
    )


def _http_error(err: SoodError) -> HTTPException:
    detail = {"error": err.message}
    if err.detail and err.status_code >= 500 and not _config.is_production:
        detail["detail"] = err.detail
    headers = None
    if isinstance(err, UpstreamRateLimitedError):
        detail["retryAfter"] = err.retry_after
        headers = {"Retry-After": str(math.ceil(err.retry_after))}
    return HTTPException(err.status_code, detail=detail, headers=headers)


# ── Routes ─────────────────────────────────────────────────────────────────

@router.post("/init", response_model=InitResponse)
async def init_session(req: InitRequest) -> InitResponse:
    orchestrator = get_orchestrator()
    try:
        reply = await orchestrator.initialize_session(req.role, req.session_id)
    except SoodError as e:
        raise _http_error(e)
    return InitResponse(message=reply.text, audio_chunks=_encode_audio(reply))


@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest) -> ChatResponse:
    orchestrator = get_orchestrator()
    try:
        reply = await orchestrator.send_message(
            req.message,
            req.session_id,
            role=req.selected_role,
            tts_enabled=req.tts_enabled,
            voice_settings=_voice_settings(req),
            voice_id=req.voice_id,
            model=req.model,
        )
    except SoodError as e:
        raise _http_error(e)
    return ChatResponse(text=reply.text, audio_chunks=_encode_audio(reply))


@router.post("/voice-settings")
async def voice_settings(req: VoiceSettingsRequest) -> dict:
    try:
        get_orchestrator().update_voice_settings(req.stability, req.similarity_boost)
    except SoodError as e:
        raise _http_error(e)
    return {"status": "Settings updated"}


@router.post("/clear-history")
async def clear_history(req: ClearHistoryRequest | None = None) -> dict:
    if req and req.session_id and _orchestrator is not None:
        await _orchestrator.clear_session(req.session_id)
    return {"status": "History cleared"}


@router.post("/transcribe")
async def transcribe(audio: UploadFile | None = File(None)) -> dict:
    if audio is None:
        raise HTTPException(400, {"error": "No audio file provided"})

    max_mb = _config.server.max_upload_mb
    data = await audio.read()
    if len(data) > max_mb * 1024 * 1024:
        raise HTTPException(413, {"error": f"File too large (max {max_mb:g}MB)."})

    # Placeholder until a speech-to-text backend is wired in
    logger.info("Received %d bytes of audio (%s)", len(data), audio.content_type)
    return {"text": TRANSCRIPTION_PLACEHOLDER}


@router.get("/health")
async def health() -> dict:
    return {
        "status": "OK",
        "chat_ready": _orchestrator is not None,
        "tts_enabled": _orchestrator is not None and _orchestrator.tts is not None,
    }
