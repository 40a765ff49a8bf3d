"""Application configuration, built once at startup from config.yaml and the environment."""

import os
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    pass


@dataclass
class LLMConfig:
    provider: str = "groq"
    model: str = "llama-3.3-70b-versatile"
    endpoint: str = "https://api.groq.com/openai"
    api_key: str = ""
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout_s: float = 120.0
    rate_limit_retry_s: float = 30.0    # used when the provider sends no Retry-After


@dataclass
class TTSConfig:
    enabled: bool = True
    api_key: str = ""
    endpoint: str = "https://api.elevenlabs.io"
    model_id: str = "eleven_turbo_v2"
    default_voice_id: str = ""
    voices: dict[str, str] = field(default_factory=dict)   # role key -> voice id
    chunk_words: int = 50
    stability: float = 0.5
    similarity_boost: float = 0.5
    timeout_s: float = 60.0

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.api_key)


@dataclass
class HistoryConfig:
    max_turns: int = 10


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    app_env: str = "development"
    static_dir: str = "public"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    trust_proxy: bool = True
    rate_limit_requests: int = 100
    rate_limit_window_s: float = 15 * 60
    max_upload_mb: float = 5


@dataclass
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    tts: TTSConfig = field(default_factory=TTSConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @property
    def is_production(self) -> bool:
        return self.server.app_env.lower() in {"prod", "production"}

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        return cls(
            llm=_section(LLMConfig, data.get("llm", {})),
            tts=_section(TTSConfig, data.get("tts", {})),
            history=_section(HistoryConfig, data.get("history", {})),
            server=_section(ServerConfig, data.get("server", {})),
        )

    def validate(self) -> "AppConfig":
        if self.history.max_turns < 3:
            raise ConfigError("history.max_turns must be at least 3 to hold the greeting exchange")
        if self.tts.chunk_words < 1:
            raise ConfigError("tts.chunk_words must be positive")
        if not 0 <= self.tts.stability <= 1 or not 0 <= self.tts.similarity_boost <= 1:
            raise ConfigError("tts.stability and tts.similarity_boost must be between 0 and 1")
        if self.server.rate_limit_requests < 1 or self.server.rate_limit_window_s <= 0:
            raise ConfigError("server rate limit must allow at least one request per window")
        return self


def _section(cls, raw: dict | None):
    raw = raw or {}
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", cls.__name__, ", ".join(sorted(unknown)))
    return cls(**{k: v for k, v in raw.items() if k in known})


# Environment variable -> (section, key, cast)
ENV_OVERRIDES = {
    "GROQ_API_KEY": ("llm", "api_key", str),
    "LLM_MODEL": ("llm", "model", str),
    "ELEVENLABS_API_KEY": ("tts", "api_key", str),
    "ELEVENLABS_VOICE_ID": ("tts", "default_voice_id", str),
    "APP_ENV": ("server", "app_env", str),
    "PORT": ("server", "port", int),
}


def load_config(config_path: str | Path | None = None) -> AppConfig:
    load_dotenv()
    path = Path(config_path or os.getenv("SOOD_CONFIG", "config.yaml"))
    if path.exists():
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    config = AppConfig.from_dict(data)

    for var, (section, key, cast) in ENV_OVERRIDES.items():
        value = os.getenv(var)
        if not value:
            continue
        try:
            setattr(getattr(config, section), key, cast(value))
        except ValueError as e:
            raise ConfigError(f"Invalid value for {var}: {value!r}") from e

    return config.validate()
