try:
    from voxhub.transcription.vosk import VoskProvider
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    VoskProvider = None  # type: ignore[assignment,misc]

__all__ = ["VoskProvider"]
