from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from pydantic import BaseModel

# Inbound
CLASSIFY = "init"
DETECT = "hotword-detected"
QUERY = "query"
RECOGNIZE = "recognize"

# Outbound
RECORD_ENABLE = "enable-record"
TYPING = "is-typing"
ANSWER = "answer"
RECOGNIZED = "recognized"
AUDIO_FORWARDED = "audio-forwarded"
ERROR = "error"

HOTWORD_NODE = "hotword-node"


class SessionMode(str, Enum):
    UNCLASSIFIED = "unclassified"
    SENSOR = "sensor"
    USER = "user"


ALLOWED_EVENTS: dict[SessionMode, frozenset[str]] = {
    SessionMode.UNCLASSIFIED: frozenset(),
    SessionMode.SENSOR: frozenset({DETECT}),
    SessionMode.USER: frozenset({QUERY, RECOGNIZE}),
}


class DetectPayload(BaseModel):
    hotword: str


class QueryPayload(BaseModel):
    client: str
    value: str


Emitter = Callable[[str, Any], Awaitable[None]]


class EventChannel(Protocol):
    client_id: str

    async def emit(self, event: str, payload: Any = None) -> None: ...


__all__ = [
    "ALLOWED_EVENTS",
    "ANSWER",
    "AUDIO_FORWARDED",
    "CLASSIFY",
    "DETECT",
    "DetectPayload",
    "ERROR",
    "Emitter",
    "EventChannel",
    "HOTWORD_NODE",
    "QUERY",
    "QueryPayload",
    "RECOGNIZE",
    "RECOGNIZED",
    "RECORD_ENABLE",
    "SessionMode",
    "TYPING",
]
