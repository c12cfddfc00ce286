"""
Unit Tests for Core Models

Tests Pydantic model validation and serialization.
"""

import pytest
from pydantic import ValidationError

from regen.core.models import (
    DEFAULT_VOICE_ID,
    ArtifactStatus,
    AudioArtifact,
    UserSettings,
    VoiceProfile,
    VoiceSettings,
)


# ══════════════════════════════════════════════════════════════
# Enum Tests
# ══════════════════════════════════════════════════════════════


class TestArtifactStatus:
    """Test artifact status enum."""

    def test_status_values(self):
        """Test the five pipeline stages in order."""
        assert [s.value for s in ArtifactStatus] == [
            "upload", "transcribing", "processing", "generating", "complete",
        ]

    def test_status_is_string(self):
        """Test statuses compare equal to their values."""
        assert ArtifactStatus.COMPLETE == "complete"


# ══════════════════════════════════════════════════════════════
# Artifact Tests
# ══════════════════════════════════════════════════════════════


class TestAudioArtifact:
    """Test AudioArtifact model."""

    def test_defaults(self):
        """Test a new artifact starts in upload with nothing derived."""
        artifact = AudioArtifact(source_ref="media://x", name="talk.mp3", size_bytes=10)

        assert artifact.status == ArtifactStatus.UPLOAD
        assert artifact.progress == 0
        assert artifact.transcription is None
        assert artifact.processed_text is None
        assert artifact.output_ref is None
        assert artifact.error is None
        assert artifact.created_at.tzinfo is not None

    def test_unique_ids(self):
        """Test artifacts get distinct ids."""
        a = AudioArtifact(source_ref="media://a", name="a.mp3")
        b = AudioArtifact(source_ref="media://b", name="b.mp3")
        assert a.id != b.id

    def test_name_required(self):
        """Test empty names are rejected."""
        with pytest.raises(ValidationError):
            AudioArtifact(source_ref="media://x", name="")

    def test_progress_bounds_on_assignment(self):
        """Test progress is validated when assigned."""
        artifact = AudioArtifact(source_ref="media://x", name="a.mp3")

        with pytest.raises(ValidationError):
            artifact.progress = 101
        with pytest.raises(ValidationError):
            artifact.progress = -1

    def test_ready_for_synthesis(self):
        """Test readiness requires processing status and processed text."""
        artifact = AudioArtifact(source_ref="media://x", name="a.mp3")
        assert not artifact.is_ready_for_synthesis

        artifact.status = ArtifactStatus.PROCESSING
        assert not artifact.is_ready_for_synthesis

        artifact.processed_text = "Hello."
        assert artifact.is_ready_for_synthesis


# ══════════════════════════════════════════════════════════════
# Settings Tests
# ══════════════════════════════════════════════════════════════


class TestUserSettings:
    """Test UserSettings and VoiceSettings models."""

    def test_defaults(self):
        """Test built-in default settings."""
        settings = UserSettings()

        assert settings.text_processing.prompt == ""
        assert settings.text_processing.instructions == ""
        assert settings.voice.voice_id == DEFAULT_VOICE_ID
        assert settings.voice.speed == 1.0
        assert settings.voice.pitch == 1.0
        assert settings.voice.response_format == "mp3"

    def test_dump_uses_camel_case(self):
        """Test serialized settings use camelCase keys."""
        data = UserSettings().model_dump(by_alias=True)

        assert set(data) == {"textProcessing", "voice"}
        assert data["voice"]["voiceId"] == "af_heart"
        assert data["voice"]["responseFormat"] == "mp3"

    def test_accepts_both_key_styles(self):
        """Test aliases and field names are both accepted."""
        by_alias = VoiceSettings.model_validate({"voiceId": "bf_emma"})
        by_name = VoiceSettings.model_validate({"voice_id": "bf_emma"})
        assert by_alias.voice_id == by_name.voice_id == "bf_emma"

    @pytest.mark.parametrize("speed", [0.4, 2.1])
    def test_speed_range(self, speed):
        """Test speed outside 0.5-2.0 is rejected."""
        with pytest.raises(ValidationError):
            VoiceSettings(speed=speed)

    def test_unknown_format_rejected(self):
        """Test only supported audio formats are accepted."""
        with pytest.raises(ValidationError):
            VoiceSettings(response_format="ogg")

    def test_with_voice_id_returns_copy(self):
        """Test with_voice_id leaves the original untouched."""
        original = UserSettings()
        changed = original.with_voice_id("bm_george")

        assert changed.voice.voice_id == "bm_george"
        assert original.voice.voice_id == DEFAULT_VOICE_ID


# ══════════════════════════════════════════════════════════════
# Voice Profile Tests
# ══════════════════════════════════════════════════════════════


class TestVoiceProfile:
    """Test VoiceProfile model."""

    def test_base_voice(self):
        """Test a plain base voice."""
        voice = VoiceProfile(id="af_heart", name="Heart", gender="Female", accent="American")
        assert voice.is_base
        assert not voice.is_composite
        assert voice.components is None

    def test_base_voice_rejects_components(self):
        """Test base voices cannot carry components."""
        with pytest.raises(ValidationError):
            VoiceProfile(
                id="af_heart", name="Heart", gender="Female", accent="American",
                components=["af_heart", "af_sky"],
            )

    def test_composite_needs_two_components(self):
        """Test composites need at least two components."""
        with pytest.raises(ValidationError):
            VoiceProfile(
                id="af_heart", name="Solo", gender="Mixed", accent="Combined",
                is_base=False, components=["af_heart"],
            )

    def test_composite_serialization(self):
        """Test composites serialize with camelCase flags."""
        voice = VoiceProfile(
            id="af_heart+bm_george", name="Duo", gender="Mixed", accent="Combined",
            is_base=False, components=["af_heart", "bm_george"],
        )
        data = voice.model_dump(mode="json", by_alias=True)

        assert data["isBase"] is False
        assert data["isPredefined"] is False
        assert data["components"] == ["af_heart", "bm_george"]
        assert VoiceProfile.model_validate(data) == voice
