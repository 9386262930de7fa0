from __future__ import annotations

from voxhub.config import SpeechSettings
from voxhub.orchestrator.events import Emitter
from voxhub.telemetry.logging import get_logger
from voxhub.transcription.base import SpeechProvider

logger = get_logger(__name__)

PROVIDERS = ("vosk",)


def build_stt_provider(name: str, emit: Emitter, settings: SpeechSettings) -> SpeechProvider:
    provider = (name or "").strip().lower()
    if provider == "vosk":
        from voxhub import transcription

        if transcription.VoskProvider is None:
            raise ModuleNotFoundError("vosk is not installed")
        if not settings.vosk_model_path:
            raise ValueError("Model path for vosk not configured")
        logger.info("transcription.provider.selected", provider=provider)
        return transcription.VoskProvider(emit, settings.vosk_model_path, sample_rate=settings.sample_rate)
    raise ValueError(f"Unknown speech-to-text provider '{name}' (available: {', '.join(PROVIDERS)})")


__all__ = ["PROVIDERS", "build_stt_provider"]
