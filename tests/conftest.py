from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from voxhub.config import NLUSettings, SpeechSettings, project_root
from voxhub.orchestrator.session import Session
from voxhub.transcription.base import SpeechProvider


@pytest.fixture
def anyio_backend():
    return "asyncio"


class RecordingChannel:
    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        self.sent: list[tuple[str, Any]] = []

    async def emit(self, event: str, payload: Any = None) -> None:
        self.sent.append((event, payload))

    def names(self) -> list[str]:
        return [event for event, _ in self.sent]

    def payloads(self, event: str) -> list[Any]:
        return [payload for name, payload in self.sent if name == event]


class FakeSpeechProvider(SpeechProvider):
    name = "fake"

    def __init__(self, emit, text: str = "turn on the light", fail_init: bool = False) -> None:
        super().__init__(emit)
        self.text = text
        self.fail_init = fail_init
        self.calls: list[bytes] = []
        self.closed = False

    async def init(self) -> None:
        if self.fail_init:
            raise RuntimeError("acoustic model missing")

    async def parse(self, pcm: bytes) -> str:
        self.calls.append(pcm)
        await self.forward(self.text)
        return self.text

    async def close(self) -> None:
        self.closed = True


async def settle(session: Session) -> None:
    while session.tasks:
        await asyncio.gather(*list(session.tasks), return_exceptions=True)


@pytest.fixture
def model_path() -> Path:
    return project_root() / "data" / "expressions" / "classifier.json"


@pytest.fixture
def nlu_settings(model_path: Path) -> NLUSettings:
    return NLUSettings(lang="en", model_path=model_path)


@pytest.fixture
def speech_settings() -> SpeechSettings:
    return SpeechSettings(stt_enabled=False, stt_provider="fake", tts_enabled=False)
