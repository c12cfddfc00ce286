"""
Text Enhancement Integration

Chat-completion client that rewrites transcripts according to a system
instruction.
"""

import structlog
from openai import AsyncOpenAI, OpenAIError

from regen.config import settings
from regen.core.errors import ServiceUnavailableError

logger = structlog.get_logger()

SERVICE_NAME = "text-enhancement"

DEFAULT_ENHANCEMENT_PROMPT = (
    "You are a text enhancement assistant. Your task is to improve the clarity, "
    "grammar, and structure of transcribed text while preserving the original "
    "meaning and intent. Remove filler words, fix grammar issues, and make the "
    "text more readable and professional."
)


def render_instruction(prompt: str | None, instructions: str | None = None) -> str:
    """
    Build the system instruction sent to the enhancement model.

    A blank prompt falls back to the built-in enhancement prompt. Additional
    instructions, when present, are appended after a blank line.
    """
    rendered = (prompt or "").strip() or DEFAULT_ENHANCEMENT_PROMPT
    if instructions and instructions.strip():
        rendered = f"{rendered}\n\nAdditional Instructions: {instructions.strip()}"
    return rendered


def render_user_message(transcript: str) -> str:
    return f"Please process this transcribed text:\n\n{transcript}"


class TextEnhancementClient:
    """
    OpenAI-compatible chat completion client.

    Usage:
        client = TextEnhancementClient()
        text = await client.enhance(render_instruction(prompt), transcript)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url or settings.openai_base_url
        self.model = model or settings.llm_model
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key or None,
                base_url=self.base_url,
                timeout=settings.service_timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.close()
            self._client = None

    async def enhance(self, instruction: str, text: str) -> str:
        """
        Rewrite text following instruction.

        Raises:
            ServiceUnavailableError: with the service's error message verbatim
        """
        try:
            client = self._get_client()
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": instruction},
                    {"role": "user", "content": render_user_message(text)},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.error("Text enhancement failed", model=self.model, error=str(e))
            raise ServiceUnavailableError(SERVICE_NAME, str(e) or "Text processing failed") from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ServiceUnavailableError(SERVICE_NAME, "Text processing returned no content")

        return content
