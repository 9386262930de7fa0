from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from voxhub.nlu.classifier import ClassifierArtifact, ExpressionClassifier
from voxhub.orchestrator.errors import SessionFailure
from voxhub.telemetry.logging import get_logger


@dataclass(slots=True)
class IntentResult:
    query: str
    lang: str
    domain: str | None
    intent: str | None
    confidence: float
    answer: str

    @property
    def matched(self) -> bool:
        return self.intent is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "lang": self.lang,
            "domain": self.domain,
            "intent": self.intent,
            "confidence": round(self.confidence, 4),
            "answer": self.answer,
        }


class UnderstandingEngine:
    """Per-session intent engine; owns its own loaded classifier."""

    def __init__(self, lang: str) -> None:
        self._lang = lang
        self._classifier: ExpressionClassifier | None = None
        self._load_attempted = False
        self._logger = get_logger(__name__)

    @property
    def lang(self) -> str:
        return self._lang

    @property
    def loaded(self) -> bool:
        return self._classifier is not None

    async def load_model(self, path: str | Path) -> None:
        if self._load_attempted:
            raise RuntimeError("Intent model load was already attempted for this engine")
        self._load_attempted = True
        model_path = Path(path)
        try:
            raw = await asyncio.to_thread(model_path.read_text, encoding="utf-8")
        except OSError as exc:
            raise SessionFailure("model_load_failure", f"Cannot read intent model {model_path}: {exc}") from exc
        try:
            artifact = ClassifierArtifact.model_validate_json(raw)
        except ValidationError as exc:
            raise SessionFailure(
                "model_load_failure",
                f"Invalid intent model {model_path}: {exc.error_count()} validation error(s)",
            ) from exc

        if artifact.lang and artifact.lang != self._lang:
            self._logger.warning("nlu.model.lang_mismatch", model_lang=artifact.lang, lang=self._lang)
        self._classifier = ExpressionClassifier(artifact)
        self._logger.info("nlu.model.loaded", path=str(model_path), intents=len(artifact.intents))

    async def process(self, text: str) -> IntentResult:
        if self._classifier is None:
            raise SessionFailure("processing_failure", "Intent model is not loaded")
        classification = self._classifier.classify(text)
        if classification.name is None:
            self._logger.info("nlu.intent.unmatched", score=classification.score)
            return IntentResult(
                query=text,
                lang=self._lang,
                domain=None,
                intent=None,
                confidence=classification.score,
                answer=self._first(self._classifier.fallback),
            )

        domain, _, intent = classification.name.partition(".")
        self._logger.info("nlu.intent.matched", domain=domain, intent=intent, score=classification.score)
        return IntentResult(
            query=text,
            lang=self._lang,
            domain=domain,
            intent=intent,
            confidence=classification.score,
            answer=self._first(self._classifier.answers_for(classification.name)),
        )

    @staticmethod
    def _first(answers: list[str]) -> str:
        return answers[0] if answers else ""


__all__ = ["IntentResult", "UnderstandingEngine"]
