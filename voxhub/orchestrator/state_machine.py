from __future__ import annotations

import asyncio
import base64
from typing import Any, Awaitable, Callable, Coroutine

from pydantic import BaseModel, ValidationError

from voxhub.asr.recognizer import RecognizerBinding
from voxhub.config import NLUSettings, SpeechSettings
from voxhub.nlu.engine import UnderstandingEngine
from voxhub.orchestrator.capabilities import Capabilities
from voxhub.orchestrator.errors import Failure, SessionFailure
from voxhub.orchestrator.events import (
    ANSWER,
    AUDIO_FORWARDED,
    CLASSIFY,
    DETECT,
    ERROR,
    HOTWORD_NODE,
    QUERY,
    RECOGNIZE,
    RECORD_ENABLE,
    TYPING,
    DetectPayload,
    Emitter,
    EventChannel,
    QueryPayload,
    SessionMode,
)
from voxhub.orchestrator.session import Session, Synthesizer
from voxhub.telemetry.logging import get_logger
from voxhub.telemetry.tracing import get_tracer, mark_failed, session_span
from voxhub.transcription.base import SpeechProvider
from voxhub.transcription.registry import build_stt_provider

EngineFactory = Callable[[str], UnderstandingEngine]
SpeechProviderFactory = Callable[[str, Emitter, SpeechSettings], SpeechProvider]
SynthesizerFactory = Callable[[SpeechSettings, str], Synthesizer]
Handler = Callable[[Session, Any], Awaitable[None]]


class SessionOrchestrator:
    def __init__(
        self,
        speech: SpeechSettings,
        nlu: NLUSettings,
        engine_factory: EngineFactory = UnderstandingEngine,
        stt_factory: SpeechProviderFactory = build_stt_provider,
        synthesizer_factory: SynthesizerFactory | None = None,
    ) -> None:
        self._speech = speech
        self._nlu = nlu
        self._engine_factory = engine_factory
        self._stt_factory = stt_factory
        self._synthesizer_factory = synthesizer_factory
        self._sessions: dict[str, Session] = {}
        self._logger = get_logger(__name__)
        self._tracer = get_tracer(__name__)
        self._handlers: dict[str, Handler] = {
            DETECT: self._on_detect,
            QUERY: self._on_query,
            RECOGNIZE: self._on_recognize,
        }

    def session(self, client_id: str) -> Session | None:
        return self._sessions.get(client_id)

    def counts(self) -> dict[str, int]:
        counts = {mode.value: 0 for mode in SessionMode}
        for session in self._sessions.values():
            counts[session.mode.value] += 1
        return counts

    async def connect(self, channel: EventChannel) -> Session:
        if channel.client_id in self._sessions:
            raise ValueError(f"Client {channel.client_id} is already connected")
        session = Session(client_id=channel.client_id, channel=channel)
        self._sessions[session.client_id] = session
        self._logger.info("session.connected", client_id=session.client_id, count=len(self._sessions))
        return session

    async def disconnect(self, client_id: str) -> None:
        session = self._sessions.pop(client_id, None)
        if session is None:
            return
        await session.release()
        self._logger.info(
            "session.disconnected",
            client_id=client_id,
            mode=session.mode.value,
            in_flight=len(session.tasks),
            count=len(self._sessions),
        )

    async def dispatch(self, client_id: str, event: str, payload: Any = None) -> None:
        session = self._sessions.get(client_id)
        if session is None:
            self._logger.warning("session.event.unknown_client", client_id=client_id, received=event)
            return

        if event == CLASSIFY:
            if session.mode is not SessionMode.UNCLASSIFIED:
                self._logger.info("session.classify.ignored", client_id=client_id, mode=session.mode.value)
                return
            await self._classify(session, payload)
            return

        if session.mode is SessionMode.UNCLASSIFIED:
            self._logger.warning("session.event.before_classify", client_id=client_id, received=event)
            return

        if not session.accepts(event):
            self._logger.debug("session.event.unsupported", client_id=client_id, mode=session.mode.value, received=event)
            return

        await self._handlers[event](session, payload)

    async def broadcast(self, event: str, payload: Any = None, exclude: str | None = None) -> int:
        targets = [session for session in self._sessions.values() if session.client_id != exclude]
        if targets:
            await asyncio.gather(*(session.emit(event, payload) for session in targets), return_exceptions=True)
        self._logger.info("session.broadcast", emitted=event, origin=exclude, receivers=len(targets))
        return len(targets)

    async def shutdown(self) -> None:
        pending = [task for session in self._sessions.values() for task in session.tasks]
        for client_id in list(self._sessions):
            await self.disconnect(client_id)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._logger.info("orchestrator.shutdown.complete", awaited=len(pending))

    async def _classify(self, session: Session, kind: Any) -> None:
        self._logger.info("session.classify", client_id=session.client_id, kind=kind)
        if kind == HOTWORD_NODE:
            session.classify(SessionMode.SENSOR)
        else:
            await self._start_user(session)
        session.ready.set()
        self._logger.info("session.classified", client_id=session.client_id, mode=session.mode.value)

    async def _start_user(self, session: Session) -> None:
        capabilities = Capabilities.from_settings(self._speech)
        session.classify(SessionMode.USER)
        session.capabilities = capabilities
        session.engine = self._engine_factory(self._nlu.lang)
        session.model_task = self._spawn(session, self._load_model(session, session.engine), "nlu-load")
        self._logger.info("session.capabilities", client_id=session.client_id, **capabilities.describe())

        if capabilities.stt_enabled:
            await self._init_recognizer(session, capabilities)
        if not session.connected:
            return
        if capabilities.tts_enabled and self._synthesizer_factory is not None:
            session.synthesizer = self._synthesizer_factory(self._speech, self._nlu.lang)

    async def _init_recognizer(self, session: Session, capabilities: Capabilities) -> None:
        provider: SpeechProvider | None = None
        try:
            provider = self._stt_factory(capabilities.stt_provider, session.emit, self._speech)
            await provider.init()
        except Exception as exc:
            session.stt_failure = Failure(
                "recognizer_init_failure",
                f"Speech-to-text provider '{capabilities.stt_provider}' is unavailable: {exc}",
            )
            self._logger.error(
                "session.stt.init_failed",
                client_id=session.client_id,
                provider=capabilities.stt_provider,
                error=str(exc),
            )
            if provider is not None:
                await provider.close()
            return
        if not session.connected:
            self._logger.info("session.stt.discarded", client_id=session.client_id, provider=capabilities.stt_provider)
            await provider.close()
            return
        session.stt = provider
        session.recognizer = RecognizerBinding()

    async def _load_model(self, session: Session, engine: UnderstandingEngine) -> None:
        try:
            await engine.load_model(self._nlu.model_path)
        except SessionFailure as exc:
            session.model_failure = exc.failure
        except Exception as exc:
            session.model_failure = Failure("model_load_failure", f"Intent model failed to load: {exc}")
        if session.model_failure is not None:
            self._logger.error(
                "session.model.load_failed",
                client_id=session.client_id,
                kind=session.model_failure.kind,
                error=session.model_failure.message,
            )

    async def _on_detect(self, session: Session, payload: Any) -> None:
        detection = await self._validate(session, DetectPayload, payload)
        if detection is None:
            return
        self._logger.info("hotword.detected", client_id=session.client_id, hotword=detection.hotword)
        await self.broadcast(RECORD_ENABLE, exclude=session.client_id)

    async def _on_query(self, session: Session, payload: Any) -> None:
        query = await self._validate(session, QueryPayload, payload)
        if query is None:
            return
        self._logger.info("session.query.received", client_id=session.client_id, client=query.client, value=query.value)
        await session.emit(TYPING, True)
        self._spawn(session, self._process_query(session, query), "query")

    async def _process_query(self, session: Session, query: QueryPayload) -> None:
        async with session.query_lock:
            if session.model_task is not None:
                await session.model_task
            engine = session.engine
            if not session.connected or engine is None:
                self._logger.debug("session.query.discarded", client_id=session.client_id)
                return
            try:
                if session.model_failure is not None:
                    await self._report(session, session.model_failure)
                    return
                with session_span(self._tracer, "session.query", session.client_id, lang=engine.lang) as span:
                    try:
                        result = await engine.process(query.value)
                    except SessionFailure as exc:
                        failure = exc.failure
                    except Exception as exc:
                        failure = Failure("processing_failure", f"Query processing failed: {exc}")
                    else:
                        failure = None
                        span.set_attribute("voxhub.intent", f"{result.domain}.{result.intent}" if result.matched else "none")
                    if failure is not None:
                        mark_failed(span, failure.kind, failure.message)
                if failure is not None:
                    await self._report(session, failure)
                    return
                await session.emit(ANSWER, result.to_dict())
                if session.synthesizer is not None and result.answer:
                    await self._speak(session, session.synthesizer, result.answer)
            finally:
                await session.emit(TYPING, False)

    async def _speak(self, session: Session, synthesizer: Synthesizer, text: str) -> None:
        try:
            audio = await synthesizer.synthesize(text)
        except SessionFailure as exc:
            await self._report(session, exc.failure)
            return
        except Exception as exc:
            await self._report(session, Failure("synthesis_failure", f"Speech synthesis failed: {exc}"))
            return
        await session.emit(AUDIO_FORWARDED, {"buffer": base64.b64encode(audio).decode("ascii"), "is_final_chunk": True})

    async def _on_recognize(self, session: Session, payload: Any) -> None:
        capabilities = session.capabilities
        if capabilities is None or not capabilities.stt_enabled:
            await self._report(session, Failure("capability_error", "Speech-to-text is disabled"))
            return
        if session.stt is None or session.recognizer is None:
            failure = session.stt_failure or Failure("recognizer_init_failure", "Speech-to-text provider is not available")
            await self._report(session, failure)
            return
        self._spawn(session, self._recognize(session, session.recognizer, session.stt, payload), "recognize")

    async def _recognize(self, session: Session, recognizer: RecognizerBinding, stt: SpeechProvider, payload: Any) -> None:
        with session_span(self._tracer, "session.recognize", session.client_id, stt_provider=stt.name) as span:
            try:
                text = await recognizer.run(payload, stt)
            except SessionFailure as exc:
                failure = exc.failure
            except Exception as exc:
                failure = Failure("processing_failure", f"Speech recognition failed: {exc}")
            else:
                failure = None
                span.set_attribute("voxhub.transcript_chars", len(text))
            if failure is not None:
                mark_failed(span, failure.kind, failure.message)
        if failure is not None:
            await self._report(session, failure)
            return
        self._logger.info("session.recognized", client_id=session.client_id, chars=len(text))

    async def _validate(self, session: Session, model: type[BaseModel], payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            await self._report(
                session,
                Failure("invalid_payload", f"Invalid {model.__name__} ({exc.error_count()} error(s))"),
            )
            return None

    async def _report(self, session: Session, failure: Failure) -> None:
        self._logger.warning(
            "session.failure",
            client_id=session.client_id,
            kind=failure.kind,
            error=failure.message,
        )
        await session.emit(ERROR, failure.to_dict())

    def _spawn(self, session: Session, coro: Coroutine[Any, Any, None], label: str) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=f"{label}:{session.client_id}")
        session.tasks.add(task)
        task.add_done_callback(lambda done: self._task_done(session, done))
        return task

    def _task_done(self, session: Session, task: asyncio.Task[None]) -> None:
        session.tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error("session.task.failed", client_id=session.client_id, task=task.get_name(), error=str(exc))


__all__ = ["SessionOrchestrator"]
