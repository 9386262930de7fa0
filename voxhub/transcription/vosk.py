from __future__ import annotations

import asyncio
import json

from vosk import KaldiRecognizer, Model, SetLogLevel  # type: ignore[import]

from voxhub.orchestrator.events import Emitter
from voxhub.telemetry.logging import get_logger
from voxhub.transcription.base import SpeechProvider


class VoskProvider(SpeechProvider):
    name = "vosk"

    def __init__(self, emit: Emitter, model_path: str, sample_rate: int = 16_000) -> None:
        if not model_path:
            raise ValueError("Vosk model path must be provided.")
        super().__init__(emit)
        self._model_path = model_path
        self._sample_rate = max(sample_rate, 1)
        self._model: Model | None = None
        self._logger = get_logger(__name__)

    async def init(self) -> None:
        if self._model is not None:
            return
        SetLogLevel(-1)
        self._model = await asyncio.to_thread(Model, self._model_path)
        self._logger.info("transcription.vosk.init", model_path=self._model_path, sample_rate=self._sample_rate)

    async def parse(self, pcm: bytes) -> str:
        if self._model is None:
            raise RuntimeError("Vosk model is not loaded")
        text = await asyncio.to_thread(self._transcribe, pcm)
        self._logger.info("transcription.vosk.parsed", bytes=len(pcm), chars=len(text))
        if text:
            await self.forward(text)
        return text

    async def close(self) -> None:
        self._model = None

    def _transcribe(self, pcm: bytes) -> str:
        # A fresh recognizer per utterance keeps parse() free of state between calls.
        recognizer = KaldiRecognizer(self._model, self._sample_rate)
        recognizer.AcceptWaveform(pcm)
        return self._consume_result(recognizer.FinalResult())

    def _consume_result(self, payload: str) -> str:
        if not payload:
            return ""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            self._logger.debug("vosk.payload.unparsable", payload=payload[:120])
            return ""
        return (data.get("text") or "").strip()
