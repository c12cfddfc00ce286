"""External service integrations."""

from .enhancement import TextEnhancementClient, render_instruction
from .speech_to_text import SpeechToTextClient
from .synthesis import SpeechSynthesisClient

__all__ = [
    "SpeechToTextClient",
    "TextEnhancementClient",
    "SpeechSynthesisClient",
    "render_instruction",
]
