from __future__ import annotations

from abc import ABC, abstractmethod

from voxhub.orchestrator.events import RECOGNIZED, Emitter


class SpeechProvider(ABC):
    name: str

    def __init__(self, emit: Emitter) -> None:
        self._emit = emit

    @abstractmethod
    async def init(self) -> None:
        """Load the underlying engine."""

    @abstractmethod
    async def parse(self, pcm: bytes) -> str:
        """Transcribe one utterance of 16-bit mono PCM."""

    @abstractmethod
    async def close(self) -> None:
        """Cleanup resources."""

    async def forward(self, text: str) -> None:
        await self._emit(RECOGNIZED, text)
