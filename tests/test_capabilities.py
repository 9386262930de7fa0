from __future__ import annotations

import dataclasses

import pytest

from voxhub.config import SpeechSettings
from voxhub.orchestrator.capabilities import Capabilities, derive_capabilities


def test_derive_normalises_provider_name() -> None:
    caps = derive_capabilities(True, "  Vosk ", False)
    assert caps == Capabilities(stt_enabled=True, stt_provider="vosk", tts_enabled=False)


def test_capabilities_are_immutable() -> None:
    caps = derive_capabilities(False, "vosk", True)
    with pytest.raises(dataclasses.FrozenInstanceError):
        caps.stt_enabled = True  # type: ignore[misc]


def test_from_settings_and_describe() -> None:
    caps = Capabilities.from_settings(SpeechSettings(stt_enabled=True, stt_provider="vosk", tts_enabled=False))
    assert caps.describe() == {"stt": "enabled", "stt_provider": "vosk", "tts": "disabled"}
