"""Voice catalog and registry."""

from .catalog import (
    COMPOSITE_SEPARATOR,
    FALLBACK_BASE_VOICES,
    PREDEFINED_COMPOSITES,
    composite_id,
    decode_voice_tag,
)
from .registry import VoiceRegistry

__all__ = [
    "VoiceRegistry",
    "COMPOSITE_SEPARATOR",
    "FALLBACK_BASE_VOICES",
    "PREDEFINED_COMPOSITES",
    "composite_id",
    "decode_voice_tag",
]
