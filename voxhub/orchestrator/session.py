from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

from voxhub.asr.recognizer import RecognizerBinding
from voxhub.nlu.engine import UnderstandingEngine
from voxhub.orchestrator.capabilities import Capabilities
from voxhub.orchestrator.errors import Failure
from voxhub.orchestrator.events import ALLOWED_EVENTS, EventChannel, SessionMode
from voxhub.telemetry.logging import get_logger
from voxhub.transcription.base import SpeechProvider

logger = get_logger(__name__)


class Synthesizer(Protocol):
    async def synthesize(self, text: str) -> bytes: ...

    async def aclose(self) -> None: ...


@dataclass(eq=False)
class Session:
    """One connected client. Collaborators are owned here and released on disconnect."""

    client_id: str
    channel: EventChannel
    mode: SessionMode = SessionMode.UNCLASSIFIED
    capabilities: Capabilities | None = None
    engine: UnderstandingEngine | None = None
    recognizer: RecognizerBinding | None = None
    stt: SpeechProvider | None = None
    synthesizer: Synthesizer | None = None
    model_task: asyncio.Task[None] | None = None
    model_failure: Failure | None = None
    stt_failure: Failure | None = None
    connected: bool = True
    tasks: set[asyncio.Task[Any]] = field(default_factory=set)
    ready: asyncio.Event = field(default_factory=asyncio.Event)
    query_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def classify(self, mode: SessionMode) -> None:
        if mode is SessionMode.UNCLASSIFIED:
            raise ValueError("A session cannot be classified back to unclassified")
        if self.mode is not SessionMode.UNCLASSIFIED:
            raise RuntimeError(f"Session {self.client_id} is already classified as {self.mode.value}")
        self.mode = mode

    def accepts(self, event: str) -> bool:
        return event in ALLOWED_EVENTS[self.mode]

    async def wait_ready(self) -> SessionMode:
        await self.ready.wait()
        return self.mode

    async def emit(self, event: str, payload: Any = None) -> None:
        if not self.connected:
            logger.debug("session.emit.discarded", client_id=self.client_id, emitted=event)
            return
        try:
            await self.channel.emit(event, payload)
        except Exception as exc:
            logger.warning("session.emit.failed", client_id=self.client_id, emitted=event, error=str(exc))

    async def release(self) -> None:
        self.connected = False
        self.ready.set()
        stt, synthesizer = self.stt, self.synthesizer
        self.stt = None
        self.synthesizer = None
        self.recognizer = None
        self.engine = None
        if stt is not None:
            try:
                await stt.close()
            except Exception as exc:
                logger.warning("session.stt.close_failed", client_id=self.client_id, error=str(exc))
        if synthesizer is not None:
            try:
                await synthesizer.aclose()
            except Exception as exc:
                logger.warning("session.tts.close_failed", client_id=self.client_id, error=str(exc))


__all__ = ["Session", "Synthesizer"]
