"""
Speech Synthesis Integration

HTTP client for the Kokoro-style OpenAI-compatible speech endpoint.
"""

from typing import Any

import httpx
import structlog

from regen.config import settings
from regen.core.errors import ServiceUnavailableError

logger = structlog.get_logger()

SERVICE_NAME = "speech-synthesis"


class SpeechSynthesisClient:
    """
    HTTP client for speech synthesis and voice listing.

    Usage:
        client = SpeechSynthesisClient()
        audio = await client.synthesize("Hello", voice="af_heart")
        tags = await client.list_voices()
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.tts_base_url).rstrip("/")
        self.timeout = timeout or settings.service_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ──────────────────────────────────────────────────────────
    # Synthesis
    # ──────────────────────────────────────────────────────────

    async def synthesize(
        self,
        text: str,
        voice: str,
        response_format: str = "mp3",
        speed: float | None = None,
    ) -> bytes:
        """
        Synthesize speech for text.

        Args:
            text: Input text
            voice: Base voice tag or composite id ("af_heart+af_sky")
            response_format: Audio container requested from the service
            speed: Optional playback speed, passed through unchanged

        Returns:
            Audio payload bytes
        """
        client = await self._get_client()
        body: dict[str, Any] = {
            "input": text,
            "voice": voice,
            "response_format": response_format,
            "stream": False,
        }
        if speed is not None:
            body["speed"] = speed

        try:
            response = await client.post("/v1/audio/speech", json=body)
        except httpx.HTTPError as e:
            logger.error("Synthesis request failed", voice=voice, error=str(e))
            raise ServiceUnavailableError(SERVICE_NAME, f"Audio generation failed: {e}") from e

        if not response.is_success:
            logger.error(
                "Synthesis service returned an error",
                voice=voice,
                status_code=response.status_code,
            )
            raise ServiceUnavailableError(
                SERVICE_NAME, f"Audio generation failed (HTTP {response.status_code})"
            )

        return response.content

    # ──────────────────────────────────────────────────────────
    # Voices
    # ──────────────────────────────────────────────────────────

    async def list_voices(self) -> list[str]:
        """Return the base voice tags offered by the service."""
        client = await self._get_client()

        try:
            response = await client.get("/v1/audio/voices")
            response.raise_for_status()
            voices = response.json().get("voices", [])
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Voice listing failed", error=str(e))
            raise ServiceUnavailableError(SERVICE_NAME, f"Voice listing failed: {e}") from e

        if not isinstance(voices, list):
            raise ServiceUnavailableError(SERVICE_NAME, "Voice listing failed: malformed response")

        return [v for v in voices if isinstance(v, str) and v]
