"""
Speech-to-Text Integration

HTTP client for the Whisper-style transcription service.
"""

import httpx
import structlog

from regen.config import settings
from regen.core.errors import ServiceUnavailableError

logger = structlog.get_logger()

SERVICE_NAME = "speech-to-text"


class SpeechToTextClient:
    """
    HTTP client for the transcription service.

    Usage:
        client = SpeechToTextClient()
        text = await client.transcribe(payload, filename="talk.mp3")
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.stt_base_url).rstrip("/")
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

    async def transcribe(
        self,
        payload: bytes,
        filename: str = "audio",
        content_type: str | None = None,
    ) -> str:
        """
        Transcribe an audio payload.

        Args:
            payload: Raw audio bytes
            filename: Name sent with the multipart upload
            content_type: MIME type of the payload, if known

        Returns:
            Transcript text

        Raises:
            ServiceUnavailableError: on transport errors, non-2xx responses
                or a response without a text field
        """
        client = await self._get_client()
        files = {"file": (filename, payload, content_type or "application/octet-stream")}

        try:
            response = await client.post("/transcribe", files=files)
        except httpx.HTTPError as e:
            logger.error("Transcription request failed", filename=filename, error=str(e))
            raise ServiceUnavailableError(SERVICE_NAME, f"Transcription failed: {e}") from e

        if not response.is_success:
            logger.error(
                "Transcription service returned an error",
                filename=filename,
                status_code=response.status_code,
            )
            raise ServiceUnavailableError(
                SERVICE_NAME, f"Transcription failed (HTTP {response.status_code})"
            )

        try:
            text = response.json()["text"]
        except (ValueError, KeyError, TypeError) as e:
            raise ServiceUnavailableError(
                SERVICE_NAME, "Transcription failed: malformed response"
            ) from e

        if not isinstance(text, str):
            raise ServiceUnavailableError(SERVICE_NAME, "Transcription failed: malformed response")

        return text
