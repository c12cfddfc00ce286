"""Core domain models, errors and the settings store."""

from .errors import (
    ArtifactBusyError,
    InvalidTransitionError,
    NotFoundError,
    ProtectedError,
    RegenError,
    ServiceUnavailableError,
    StorageError,
    ValidationError,
)
from .models import (
    DEFAULT_VOICE_ID,
    ArtifactStatus,
    AudioArtifact,
    TextProcessingSettings,
    UserSettings,
    VoiceProfile,
    VoiceSettings,
)
from .settings_store import SettingsStore

__all__ = [
    "DEFAULT_VOICE_ID",
    "ArtifactStatus",
    "AudioArtifact",
    "TextProcessingSettings",
    "UserSettings",
    "VoiceProfile",
    "VoiceSettings",
    "SettingsStore",
    # Errors
    "RegenError",
    "ServiceUnavailableError",
    "ValidationError",
    "ProtectedError",
    "NotFoundError",
    "InvalidTransitionError",
    "ArtifactBusyError",
    "StorageError",
]
