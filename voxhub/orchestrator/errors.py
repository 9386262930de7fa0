from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

FailureKind = Literal[
    "model_load_failure",
    "recognizer_init_failure",
    "capability_error",
    "processing_failure",
    "invalid_payload",
    "synthesis_failure",
]


@dataclass(slots=True, frozen=True)
class Failure:
    """Structured error delivered back to the session that caused it."""

    kind: FailureKind
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class SessionFailure(Exception):
    """Raised by collaborators to carry a `Failure` across an await."""

    def __init__(self, kind: FailureKind, message: str) -> None:
        super().__init__(message)
        self.failure = Failure(kind=kind, message=message)

    @property
    def kind(self) -> FailureKind:
        return self.failure.kind


__all__ = ["Failure", "FailureKind", "SessionFailure"]
