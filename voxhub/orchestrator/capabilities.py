from __future__ import annotations

from dataclasses import dataclass

from voxhub.config import SpeechSettings


@dataclass(slots=True, frozen=True)
class Capabilities:
    stt_enabled: bool
    stt_provider: str
    tts_enabled: bool

    @classmethod
    def from_settings(cls, settings: SpeechSettings) -> "Capabilities":
        return derive_capabilities(settings.stt_enabled, settings.stt_provider, settings.tts_enabled)

    def describe(self) -> dict[str, str]:
        return {
            "stt": "enabled" if self.stt_enabled else "disabled",
            "stt_provider": self.stt_provider,
            "tts": "enabled" if self.tts_enabled else "disabled",
        }


def derive_capabilities(stt_enabled: bool, stt_provider: str, tts_enabled: bool) -> Capabilities:
    return Capabilities(
        stt_enabled=bool(stt_enabled),
        stt_provider=(stt_provider or "").strip().lower(),
        tts_enabled=bool(tts_enabled),
    )


__all__ = ["Capabilities", "derive_capabilities"]
