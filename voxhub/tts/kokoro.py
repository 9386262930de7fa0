from __future__ import annotations

import httpx

from voxhub.orchestrator.errors import SessionFailure
from voxhub.telemetry.logging import get_logger


class KokoroSynthesizer:
    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        voice: str,
        lang: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._voice = voice
        self._lang = lang
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=5.0))
        self._logger = get_logger(__name__)

    def _build_request(self, text: str) -> dict[str, object]:
        return {
            "model": "kokoro",
            "voice": self._voice,
            "input": text,
            "response_format": "wav",
            "language": self._lang,
        }

    async def synthesize(self, text: str) -> bytes:
        payload = self._build_request(text)
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        preview = text if len(text) <= 120 else text[:120] + "…"
        self._logger.info("kokoro.tts.request", voice=self._voice, lang=self._lang, input=preview)
        try:
            async with self._client.stream("POST", self._base_url, headers=headers, json=payload) as resp:
                resp.raise_for_status()
                audio_chunks: list[bytes] = []
                async for chunk in resp.aiter_bytes():
                    audio_chunks.append(chunk)
        except httpx.HTTPStatusError as exc:
            raise SessionFailure(
                "synthesis_failure",
                f"Speech synthesis returned HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            raise SessionFailure("synthesis_failure", f"Speech synthesis request failed: {exc}") from exc
        return b"".join(audio_chunks)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["KokoroSynthesizer"]
