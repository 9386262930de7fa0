from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import BaseModel, Field, field_validator

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class IntentSpec(BaseModel):
    expressions: list[str] = Field(min_length=1)
    answers: list[str] = Field(default_factory=list)


class ClassifierArtifact(BaseModel):
    lang: str | None = None
    threshold: float = Field(default=0.5, gt=0.0, le=1.0)
    fallback: list[str] = Field(default_factory=lambda: ["Sorry, I'm not sure what you mean."])
    intents: dict[str, IntentSpec]

    @field_validator("intents")
    @classmethod
    def _check_names(cls, intents: dict[str, IntentSpec]) -> dict[str, IntentSpec]:
        for name in intents:
            domain, _, intent = name.partition(".")
            if not domain or not intent:
                raise ValueError(f"Intent name '{name}' must look like '<domain>.<intent>'")
        return intents


@dataclass(slots=True)
class Classification:
    name: str | None
    score: float


def tokenize(text: str) -> frozenset[str]:
    return frozenset(token.lower() for token in _TOKEN_RE.findall(text))


class ExpressionClassifier:
    """Scores a query against every training expression by token-set overlap."""

    def __init__(self, artifact: ClassifierArtifact) -> None:
        self._artifact = artifact
        self._index: list[tuple[str, frozenset[str]]] = [
            (name, tokenize(expression))
            for name, entry in artifact.intents.items()
            for expression in entry.expressions
        ]

    @property
    def threshold(self) -> float:
        return self._artifact.threshold

    @property
    def fallback(self) -> list[str]:
        return self._artifact.fallback

    def answers_for(self, name: str) -> list[str]:
        entry = self._artifact.intents.get(name)
        return list(entry.answers) if entry else []

    def classify(self, text: str) -> Classification:
        query = tokenize(text)
        if not query:
            return Classification(name=None, score=0.0)
        best_name: str | None = None
        best_score = 0.0
        for name, tokens in self._index:
            if not tokens:
                continue
            score = len(query & tokens) / len(query | tokens)
            if score > best_score:
                best_name, best_score = name, score
        if best_score < self.threshold:
            return Classification(name=None, score=best_score)
        return Classification(name=best_name, score=best_score)


__all__ = ["Classification", "ClassifierArtifact", "ExpressionClassifier", "IntentSpec", "tokenize"]
