from __future__ import annotations

import base64
import binascii
from typing import Any

import numpy as np

from voxhub.orchestrator.errors import SessionFailure
from voxhub.telemetry.logging import get_logger
from voxhub.transcription.base import SpeechProvider


def _float_to_pcm16(samples: np.ndarray) -> bytes:
    if samples.dtype != np.float32:
        samples = samples.astype(np.float32)
    return (np.clip(samples, -1.0, 1.0) * 32767.0).astype(np.int16).tobytes()


def decode_audio(payload: Any) -> bytes:
    """Turn a recognize payload into 16-bit little-endian mono PCM."""
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)

    if isinstance(payload, list):
        if not all(isinstance(sample, (int, float)) and not isinstance(sample, bool) for sample in payload):
            raise SessionFailure("invalid_payload", "Audio sample list must contain numbers")
        try:
            samples = np.asarray(payload, dtype=np.float32)
        except (TypeError, ValueError) as exc:
            raise SessionFailure("invalid_payload", "Audio sample list must contain numbers") from exc
        return _float_to_pcm16(samples)

    if isinstance(payload, dict):
        encoded = payload.get("audio")
        if not isinstance(encoded, str) or not encoded:
            raise SessionFailure("invalid_payload", "Recognize payload is missing base64 'audio'")
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SessionFailure("invalid_payload", "Recognize payload 'audio' is not valid base64") from exc
        fmt = payload.get("format", "int16")
        if fmt == "int16":
            return raw
        if fmt == "float32":
            if len(raw) % 4:
                raise SessionFailure("invalid_payload", "float32 audio length must be a multiple of 4 bytes")
            return _float_to_pcm16(np.frombuffer(raw, dtype="<f4"))
        raise SessionFailure("invalid_payload", f"Unsupported audio format '{fmt}'")

    raise SessionFailure("invalid_payload", f"Unsupported recognize payload type {type(payload).__name__}")


class RecognizerBinding:
    """Stateless facade between a recognize event and the session's STT provider."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    async def run(self, payload: Any, provider: SpeechProvider) -> str:
        pcm = decode_audio(payload)
        if not pcm:
            raise SessionFailure("invalid_payload", "Recognize payload contains no audio")
        self._logger.debug("asr.run", provider=provider.name, bytes=len(pcm))
        try:
            return await provider.parse(pcm)
        except SessionFailure:
            raise
        except Exception as exc:
            raise SessionFailure("processing_failure", f"Speech recognition failed: {exc}") from exc


__all__ = ["RecognizerBinding", "decode_audio"]
