"""
Regen Core Domain Models

Pydantic models representing the core domain entities.
These are used throughout the application for data validation and serialization.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_VOICE_ID = "af_heart"

ResponseFormat = Literal["mp3", "wav", "opus", "aac", "flac"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ══════════════════════════════════════════════════════════════
# Enums
# ══════════════════════════════════════════════════════════════


class ArtifactStatus(str, Enum):
    """Pipeline stage of an audio artifact."""

    UPLOAD = "upload"
    TRANSCRIBING = "transcribing"
    PROCESSING = "processing"
    GENERATING = "generating"
    COMPLETE = "complete"


# ══════════════════════════════════════════════════════════════
# Base Models
# ══════════════════════════════════════════════════════════════


class RegenModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ══════════════════════════════════════════════════════════════
# Artifact Models
# ══════════════════════════════════════════════════════════════


class AudioArtifact(RegenModel):
    """One media item and its derived text and audio moving through the pipeline."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        validate_assignment=True,
    )

    id: UUID = Field(default_factory=uuid4)
    source_ref: str
    name: str = Field(..., min_length=1)
    size_bytes: int = Field(0, ge=0)
    content_type: str | None = None

    status: ArtifactStatus = ArtifactStatus.UPLOAD
    transcription: str | None = None
    processed_text: str | None = None
    output_ref: str | None = None
    output_format: str | None = None

    progress: int = Field(0, ge=0, le=100)
    error: str | None = None

    created_at: datetime = Field(default_factory=_utcnow, frozen=True)

    @property
    def has_transcription(self) -> bool:
        return self.transcription is not None

    @property
    def is_ready_for_synthesis(self) -> bool:
        return self.status == ArtifactStatus.PROCESSING and self.processed_text is not None


# ══════════════════════════════════════════════════════════════
# User Settings
# ══════════════════════════════════════════════════════════════


class TextProcessingSettings(RegenModel):
    """Prompt and extra instructions used for text enhancement."""

    prompt: str = ""
    instructions: str = ""


class VoiceSettings(RegenModel):
    """Voice parameters passed to the speech synthesis service."""

    voice_id: str = Field(DEFAULT_VOICE_ID, alias="voiceId", min_length=1)
    speed: float = Field(1.0, ge=0.5, le=2.0)
    pitch: float = Field(1.0, ge=0.5, le=2.0)
    response_format: ResponseFormat = Field("mp3", alias="responseFormat")


class UserSettings(RegenModel):
    """User configuration persisted by the settings store."""

    text_processing: TextProcessingSettings = Field(
        default_factory=TextProcessingSettings, alias="textProcessing"
    )
    voice: VoiceSettings = Field(default_factory=VoiceSettings)

    def with_voice_id(self, voice_id: str) -> "UserSettings":
        """Return a copy with a different selected voice."""
        return self.model_copy(
            update={"voice": self.voice.model_copy(update={"voice_id": voice_id})}
        )


# ══════════════════════════════════════════════════════════════
# Voice Models
# ══════════════════════════════════════════════════════════════


class VoiceProfile(RegenModel):
    """A synthesis voice: either a base voice tag or a composite of base voices."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    gender: str
    accent: str
    is_base: bool = Field(True, alias="isBase")
    is_predefined: bool = Field(False, alias="isPredefined")
    components: list[str] | None = None
    description: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")

    @model_validator(mode="after")
    def check_components(self) -> "VoiceProfile":
        if self.is_base and self.components:
            raise ValueError("Base voices cannot have components")
        if not self.is_base and (not self.components or len(self.components) < 2):
            raise ValueError("Composite voices need at least two components")
        return self

    @property
    def is_composite(self) -> bool:
        return not self.is_base
