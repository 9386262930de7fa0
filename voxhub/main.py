from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voxhub.config import AppSettings, SpeechSettings, load_settings
from voxhub.orchestrator.state_machine import SessionOrchestrator
from voxhub.telemetry.logging import configure_logging, get_logger
from voxhub.telemetry.tracing import configure_tracing
from voxhub.tts.kokoro import KokoroSynthesizer
from voxhub.ui.websocket import SocketHub

logger = get_logger(__name__)


def build_synthesizer(speech: SpeechSettings, lang: str) -> KokoroSynthesizer:
    return KokoroSynthesizer(speech.kokoro_url, speech.kokoro_api_key, speech.kokoro_voice, lang)


def build_orchestrator(settings: AppSettings) -> SessionOrchestrator:
    return SessionOrchestrator(
        speech=settings.speech,
        nlu=settings.nlu,
        synthesizer_factory=build_synthesizer,
    )


def create_app(settings: AppSettings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.telemetry.log_level)
    configure_tracing("voxhub", settings.telemetry.otlp_endpoint)

    orchestrator = build_orchestrator(settings)
    hub = SocketHub(orchestrator)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("app.started", lang=settings.nlu.lang, model_path=str(settings.nlu.model_path))
        yield
        await orchestrator.shutdown()

    app = FastAPI(title="Voxhub", lifespan=lifespan)
    app.state.orchestrator = orchestrator

    origins = {settings.server.ui_origin}
    if "localhost" in settings.server.ui_origin:
        origins.add(settings.server.ui_origin.replace("localhost", "127.0.0.1"))
    app.include_router(hub.router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins),
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {"status": "ok", "sessions": orchestrator.counts()}

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
