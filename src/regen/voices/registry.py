"""
Voice Profile Registry

Catalogs base voices from the synthesis service together with predefined
and user-created composite voices. Only user-created composites are
persisted, as a JSON list under a single key.
"""

import json
from collections.abc import Sequence
from datetime import datetime, timezone

import structlog
from pydantic import ValidationError as PydanticValidationError

from regen.config import settings
from regen.core.errors import (
    NotFoundError,
    ProtectedError,
    ServiceUnavailableError,
    StorageError,
    ValidationError,
)
from regen.core.models import ResponseFormat, VoiceProfile
from regen.core.settings_store import SettingsStore
from regen.db import KeyValueStore
from regen.integrations.synthesis import SpeechSynthesisClient

from .catalog import (
    COMPOSITE_SEPARATOR,
    FALLBACK_BASE_VOICES,
    PREDEFINED_COMPOSITES,
    PREDEFINED_IDS,
    SAMPLE_TEXT,
    VALIDATION_TEXT,
    composite_id,
    decode_voice_tag,
)

logger = structlog.get_logger()


class VoiceRegistry:
    """
    Voice catalog with composite creation and deletion rules.

    Registry operations either succeed completely or raise without changing
    anything. Writing user composites to storage is best-effort: the
    in-memory list stays authoritative when the store is unavailable.

    Usage:
        registry = VoiceRegistry(tts, store, settings_store)
        await registry.load()
        voice = await registry.create_composite("Duo", ["af_heart", "bm_george"])
        await registry.delete_composite(voice.id)
    """

    def __init__(
        self,
        tts: SpeechSynthesisClient,
        store: KeyValueStore,
        settings_store: SettingsStore,
        key: str | None = None,
    ):
        self.tts = tts
        self.store = store
        self.settings_store = settings_store
        self.key = key or settings.voice_store_key

        self._user_composites: list[VoiceProfile] = []
        self._base_voices: list[VoiceProfile] | None = None

    # ──────────────────────────────────────────────────────────
    # Loading
    # ──────────────────────────────────────────────────────────

    async def load(self) -> list[VoiceProfile]:
        """Load user-created composites from storage."""
        try:
            raw = await self.store.get(self.key)
        except StorageError as e:
            logger.warning("Voice storage unavailable", error=str(e))
            raw = None

        self._user_composites = self._parse(raw)
        logger.info("User composites loaded", count=len(self._user_composites))
        return self.user_composites

    def _parse(self, raw: str | None) -> list[VoiceProfile]:
        if raw is None:
            return []

        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt stored voices, ignoring", error=str(e))
            return []

        if not isinstance(items, list):
            logger.warning("Unexpected stored voices type, ignoring")
            return []

        voices: list[VoiceProfile] = []
        seen: set[str] = set(PREDEFINED_IDS)
        for item in items:
            try:
                voice = VoiceProfile.model_validate(item)
            except PydanticValidationError as e:
                logger.warning("Discarding invalid stored voice", error=str(e))
                continue

            if voice.is_base or voice.id in seen:
                logger.warning("Discarding stored voice", voice_id=voice.id)
                continue

            seen.add(voice.id)
            voices.append(voice.model_copy(update={"is_predefined": False}))

        return voices

    async def _persist(self) -> bool:
        payload = json.dumps(
            [v.model_dump(mode="json", by_alias=True) for v in self._user_composites]
        )
        try:
            await self.store.set(self.key, payload)
        except StorageError as e:
            logger.warning("Failed to persist user composites", key=self.key, error=str(e))
            return False
        return True

    # ──────────────────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────────────────

    @property
    def user_composites(self) -> list[VoiceProfile]:
        return [v.model_copy() for v in self._user_composites]

    @property
    def predefined_composites(self) -> list[VoiceProfile]:
        return [v.model_copy() for v in PREDEFINED_COMPOSITES]

    async def list_base_voices(self, refresh: bool = False) -> list[VoiceProfile]:
        """
        Base voices decoded from the synthesis service's voice listing.

        A successful listing is cached until `refresh` is requested. When
        the listing fails the fallback list is returned and nothing is
        cached, so the next call asks the service again.
        """
        if self._base_voices is not None and not refresh:
            return [v.model_copy() for v in self._base_voices]

        try:
            tags = await self.tts.list_voices()
        except ServiceUnavailableError as e:
            logger.warning("Voice listing failed, using fallback voices", error=str(e))
            return [v.model_copy() for v in FALLBACK_BASE_VOICES]

        self._base_voices = [decode_voice_tag(tag) for tag in tags]
        logger.debug("Base voices listed", count=len(self._base_voices))
        return [v.model_copy() for v in self._base_voices]

    async def list_voices(self) -> list[VoiceProfile]:
        """Predefined composites, then user composites, then base voices."""
        return [
            *self.predefined_composites,
            *self.user_composites,
            *await self.list_base_voices(),
        ]

    def find_composite(self, voice_id: str) -> VoiceProfile | None:
        for voice in (*PREDEFINED_COMPOSITES, *self._user_composites):
            if voice.id == voice_id:
                return voice.model_copy()
        return None

    async def get_voice(self, voice_id: str) -> VoiceProfile:
        voice = self.find_composite(voice_id)
        if voice is not None:
            return voice

        for base in await self.list_base_voices():
            if base.id == voice_id:
                return base

        raise NotFoundError(f"Unknown voice: {voice_id}")

    # ──────────────────────────────────────────────────────────
    # Composite Management
    # ──────────────────────────────────────────────────────────

    async def create_composite(self, name: str, base_voice_ids: Sequence[str]) -> VoiceProfile:
        """
        Create and persist a user composite voice.

        The composite is first checked with a trial synthesis; it is only
        registered when the synthesis service accepts it.

        Args:
            name: Display name
            base_voice_ids: Base voice tags in selection order

        Returns:
            The new composite profile

        Raises:
            ValidationError: Bad name or voice selection, or id already taken
            ServiceUnavailableError: The trial synthesis failed
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Please provide a name for the combined voice")

        ids = [str(v).strip() for v in base_voice_ids]
        if len(ids) < 2:
            raise ValidationError("Please select at least 2 voices to combine")
        if any(not v or COMPOSITE_SEPARATOR in v for v in ids):
            raise ValidationError("Only base voice ids can be combined")
        if len(set(ids)) != len(ids):
            raise ValidationError("Each voice can only be selected once")

        voice_id = composite_id(ids)
        self._check_available(voice_id)

        log = logger.bind(voice_id=voice_id)
        log.info("Validating combined voice")
        try:
            await self.tts.synthesize(VALIDATION_TEXT, voice=voice_id, response_format="mp3")
        except ServiceUnavailableError as e:
            log.error("Combined voice validation failed", error=e.message)
            raise

        # Another creation may have registered the same id meanwhile
        self._check_available(voice_id)

        voice = VoiceProfile(
            id=voice_id,
            name=name,
            gender="Mixed",
            accent="Combined",
            is_base=False,
            is_predefined=False,
            components=ids,
            created_at=datetime.now(timezone.utc),
        )
        self._user_composites.append(voice)
        await self._persist()

        log.info("Combined voice created", name=name)
        return voice.model_copy()

    async def delete_composite(self, voice_id: str) -> VoiceProfile:
        """
        Delete a user composite voice.

        If it was the selected voice, the selection falls back to the
        default base voice.

        Raises:
            ProtectedError: The voice is predefined
            NotFoundError: No user composite has this id
        """
        if voice_id in PREDEFINED_IDS:
            raise ProtectedError(f"Predefined voice cannot be deleted: {voice_id}")

        for index, voice in enumerate(self._user_composites):
            if voice.id == voice_id:
                break
        else:
            raise NotFoundError(f"Unknown combined voice: {voice_id}")

        del self._user_composites[index]
        await self._persist()
        logger.info("Combined voice deleted", voice_id=voice_id)

        current = self.settings_store.current
        if current.voice.voice_id == voice_id:
            logger.info(
                "Deleted voice was selected, resetting",
                default_voice_id=settings.default_voice_id,
            )
            await self.settings_store.save(current.with_voice_id(settings.default_voice_id))

        return voice.model_copy()

    async def preview_voice(self, voice_id: str, response_format: ResponseFormat = "mp3") -> bytes:
        """Synthesize the sample sentence with a registered voice."""
        voice = await self.get_voice(voice_id)
        return await self.tts.synthesize(SAMPLE_TEXT, voice=voice.id, response_format=response_format)

    def _check_available(self, voice_id: str) -> None:
        if self.find_composite(voice_id) is not None:
            raise ValidationError(f"A combined voice with id {voice_id} already exists")
