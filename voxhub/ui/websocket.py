from __future__ import annotations

import asyncio
import json
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from voxhub.orchestrator.events import RECOGNIZE
from voxhub.orchestrator.state_machine import SessionOrchestrator
from voxhub.telemetry.logging import bind_client, get_logger


class WebSocketChannel:
    """Event channel over one websocket; frames are `{"event": ..., "data": ...}`."""

    def __init__(self, websocket: WebSocket, client_id: str | None = None) -> None:
        self.client_id = client_id or uuid4().hex
        self._websocket = websocket
        self._lock = asyncio.Lock()

    async def emit(self, event: str, payload: Any = None) -> None:
        async with self._lock:
            await self._websocket.send_json({"event": event, "data": payload})


class SocketHub:
    def __init__(self, orchestrator: SessionOrchestrator, path: str = "/ws") -> None:
        self._orchestrator = orchestrator
        self._router = APIRouter()
        self._router.add_api_websocket_route(path, self._websocket_handler)
        self._logger = get_logger(__name__)

    @property
    def router(self) -> APIRouter:
        return self._router

    async def _websocket_handler(self, websocket: WebSocket) -> None:
        await websocket.accept()
        channel = WebSocketChannel(websocket)
        await self._orchestrator.connect(channel)
        with bind_client(channel.client_id):
            self._logger.info("ws.client.connected")
            try:
                while True:
                    message = await websocket.receive()
                    if message["type"] == "websocket.disconnect":
                        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
                    frame = self._decode(message)
                    if frame is None:
                        continue
                    event, data = frame
                    await self._orchestrator.dispatch(channel.client_id, event, data)
            except WebSocketDisconnect:
                self._logger.info("ws.client.disconnected")
            finally:
                await self._orchestrator.disconnect(channel.client_id)

    def _decode(self, message: dict[str, Any]) -> tuple[str, Any] | None:
        """Text frames carry JSON events; binary frames are raw PCM16 audio for recognition."""
        data = message.get("bytes")
        if data is not None:
            return RECOGNIZE, data
        raw = message.get("text")
        if raw is None:
            self._logger.warning("ws.frame.empty")
            return None
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            self._logger.warning("ws.frame.invalid_json", frame=raw[:120])
            return None
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            self._logger.warning("ws.frame.invalid", frame=raw[:120])
            return None
        return frame["event"], frame.get("data")


__all__ = ["SocketHub", "WebSocketChannel"]
