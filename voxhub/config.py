from __future__ import annotations

import functools
from pathlib import Path

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Supported assistant languages and the short code the NLU layer works with.
LANGUAGES: dict[str, str] = {
    "en-US": "en",
    "fr-FR": "fr",
}

DEFAULT_MODEL_PATH = Path("data") / "expressions" / "classifier.json"


class SpeechSettings(BaseModel):
    stt_enabled: bool = False
    stt_provider: str = "vosk"
    tts_enabled: bool = False
    vosk_model_path: str | None = None
    sample_rate: int = 16_000
    kokoro_url: str = "http://localhost:8880/v1/audio/speech"
    kokoro_api_key: str | None = None
    kokoro_voice: str = "af_sky"


class NLUSettings(BaseModel):
    lang: str = "en"
    model_path: Path


class TelemetrySettings(BaseModel):
    log_level: str = "INFO"
    otlp_endpoint: str | None = None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 1337
    ui_origin: str = "http://localhost:1338"


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env", ".env.local"), env_file_encoding="utf-8", extra="ignore")

    ASSISTANT_LANG: str = "en-US"
    STT_ENABLED: bool = False
    STT_PROVIDER: str = "vosk"
    TTS_ENABLED: bool = False
    VOSK_MODEL_PATH: str | None = None
    STT_SAMPLE_RATE: int = 16_000
    KOKORO_API_URL: str = "http://localhost:8880/v1/audio/speech"
    KOKORO_API_KEY: str | None = None
    KOKORO_DEFAULT_VOICE: str = "af_sky"
    NLU_MODEL_PATH: str | None = None
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None
    HOST: str = "0.0.0.0"
    PORT: int = 1337
    UI_ORIGIN: str = "http://localhost:1338"

    @field_validator("ASSISTANT_LANG")
    @classmethod
    def _check_lang(cls, value: str) -> str:
        if value not in LANGUAGES:
            supported = ", ".join(sorted(LANGUAGES))
            raise ValueError(f"Unsupported language '{value}' (expected one of: {supported})")
        return value

    @property
    def speech(self) -> SpeechSettings:
        return SpeechSettings(
            stt_enabled=self.STT_ENABLED,
            stt_provider=self.STT_PROVIDER,
            tts_enabled=self.TTS_ENABLED,
            vosk_model_path=self.VOSK_MODEL_PATH,
            sample_rate=self.STT_SAMPLE_RATE,
            kokoro_url=self.KOKORO_API_URL,
            kokoro_api_key=self.KOKORO_API_KEY,
            kokoro_voice=self.KOKORO_DEFAULT_VOICE,
        )

    @property
    def nlu(self) -> NLUSettings:
        model_path = Path(self.NLU_MODEL_PATH) if self.NLU_MODEL_PATH else DEFAULT_MODEL_PATH
        if not model_path.is_absolute():
            model_path = project_root() / model_path
        return NLUSettings(lang=LANGUAGES[self.ASSISTANT_LANG], model_path=model_path)

    @property
    def telemetry(self) -> TelemetrySettings:
        return TelemetrySettings(log_level=self.LOG_LEVEL, otlp_endpoint=self.OTEL_EXPORTER_OTLP_ENDPOINT)

    @property
    def server(self) -> ServerSettings:
        return ServerSettings(host=self.HOST, port=self.PORT, ui_origin=self.UI_ORIGIN)


@functools.lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    return AppSettings()


def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


__all__ = [
    "AppSettings",
    "LANGUAGES",
    "NLUSettings",
    "SpeechSettings",
    "load_settings",
    "project_root",
]
