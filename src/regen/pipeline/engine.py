"""
Pipeline Engine

Owns the artifact collection and the per-artifact state machine:

    upload -> transcribing -> processing -> generating -> complete

Failures never produce a terminal error state. A failed stage attempt reverts
the artifact to the stage it started from with `error` set, so the same
operation can simply be retried.
"""

import asyncio
import mimetypes
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar
from uuid import UUID

import structlog

from regen.core.errors import (
    ArtifactBusyError,
    InvalidTransitionError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from regen.core.models import ArtifactStatus, AudioArtifact, VoiceSettings
from regen.integrations.enhancement import (
    SERVICE_NAME as ENHANCEMENT_SERVICE,
    TextEnhancementClient,
    render_instruction,
)
from regen.integrations.speech_to_text import SpeechToTextClient
from regen.integrations.synthesis import SpeechSynthesisClient

from .media import MediaStore

logger = structlog.get_logger()

T = TypeVar("T")

SUPPORTED_EXTENSIONS = (
    ".mp3", ".wav", ".m4a", ".flac", ".aac", ".ogg",
    ".mp4", ".mov", ".avi", ".mkv",
)

# Progress reported once the request has been handed to the service
DISPATCHED_PROGRESS = 50


def is_supported_media(name: str, content_type: str | None = None) -> bool:
    """Accept audio MIME types and the known audio/video extensions."""
    if content_type and content_type.startswith("audio/"):
        return True
    return name.lower().endswith(SUPPORTED_EXTENSIONS)


# ══════════════════════════════════════════════════════════════
# Change Notification
# ══════════════════════════════════════════════════════════════


class EventKind(str, Enum):
    """Kind of artifact change."""

    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class ArtifactEvent:
    """Snapshot of an artifact right after a change."""

    kind: EventKind
    artifact: AudioArtifact


ArtifactListener = Callable[[ArtifactEvent], Any]


# ══════════════════════════════════════════════════════════════
# Engine
# ══════════════════════════════════════════════════════════════


class PipelineEngine:
    """
    Per-artifact state machine over the external speech services.

    Callers only ever receive copies of artifacts; every change goes through
    the operations below.

    Usage:
        engine = PipelineEngine(stt, enhancer, tts)
        artifact = engine.add_artifact("talk.mp3", payload)
        artifact = await engine.request_transcription(artifact.id)
        text = await engine.request_enhancement(artifact.id, prompt, instructions)
        engine.accept_enhancement(artifact.id, text)
        artifact = await engine.request_synthesis(artifact.id, voice)
    """

    def __init__(
        self,
        stt: SpeechToTextClient,
        enhancer: TextEnhancementClient,
        tts: SpeechSynthesisClient,
        media: MediaStore | None = None,
    ):
        self.stt = stt
        self.enhancer = enhancer
        self.tts = tts
        self.media = media or MediaStore()

        self._artifacts: dict[UUID, AudioArtifact] = {}
        self._in_flight: set[UUID] = set()
        self._listeners: list[ArtifactListener] = []

    async def close(self) -> None:
        """Release the service clients."""
        await asyncio.gather(self.stt.close(), self.enhancer.close(), self.tts.close())

    # ──────────────────────────────────────────────────────────
    # Intake
    # ──────────────────────────────────────────────────────────

    def add_artifact(
        self,
        name: str,
        payload: bytes,
        content_type: str | None = None,
    ) -> AudioArtifact:
        """Register a new artifact in the upload stage."""
        if not name:
            raise ValidationError("Artifact name is required")

        source_ref = self.media.put(payload, content_type)
        artifact = AudioArtifact(
            source_ref=source_ref,
            name=name,
            size_bytes=len(payload),
            content_type=content_type,
        )
        self._artifacts[artifact.id] = artifact

        logger.info(
            "Artifact added",
            artifact_id=str(artifact.id),
            name=name,
            size_bytes=artifact.size_bytes,
        )
        self._emit(EventKind.CREATED, artifact)
        return artifact.model_copy()

    async def add_files(self, paths: Iterable[str | Path]) -> list[AudioArtifact]:
        """Read files from disk, skipping anything that is not audio or video."""
        added = []
        for raw_path in paths:
            path = Path(raw_path)
            content_type, _ = mimetypes.guess_type(path.name)

            if not is_supported_media(path.name, content_type):
                logger.warning("Skipping unsupported file", path=str(path))
                continue

            try:
                payload = await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                raise ValidationError(f"Cannot read {path}: {e}") from e

            added.append(self.add_artifact(path.name, payload, content_type))

        return added

    # ──────────────────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────────────────

    def get(self, artifact_id: UUID | str) -> AudioArtifact:
        return self._require(artifact_id).model_copy()

    def list_artifacts(self, status: ArtifactStatus | None = None) -> list[AudioArtifact]:
        """Snapshot of artifacts in insertion order, optionally filtered by status."""
        return [
            a.model_copy()
            for a in self._artifacts.values()
            if status is None or a.status == status
        ]

    def counts(self) -> dict[ArtifactStatus, int]:
        """Number of artifacts per stage."""
        result = {status: 0 for status in ArtifactStatus}
        for artifact in self._artifacts.values():
            result[artifact.status] += 1
        return result

    def is_in_flight(self, artifact_id: UUID | str) -> bool:
        return self._require(artifact_id).id in self._in_flight

    def read_source(self, artifact_id: UUID | str) -> bytes:
        return self.media.get(self._require(artifact_id).source_ref).data

    def read_output(self, artifact_id: UUID | str) -> bytes | None:
        artifact = self._require(artifact_id)
        if artifact.output_ref is None:
            return None
        return self.media.get(artifact.output_ref).data

    # ──────────────────────────────────────────────────────────
    # Listeners
    # ──────────────────────────────────────────────────────────

    def subscribe(self, listener: ArtifactListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ArtifactListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ──────────────────────────────────────────────────────────
    # Stage Operations
    # ──────────────────────────────────────────────────────────

    async def request_transcription(self, artifact_id: UUID | str) -> AudioArtifact:
        """
        Transcribe an artifact in the upload stage.

        Success leaves the artifact in `transcribing` with the transcript set;
        the caller decides when to move on to enhancement. Failure reverts it
        to `upload` with the error recorded.
        """
        artifact = self._require(artifact_id)
        self._check_idle(artifact)
        if artifact.status != ArtifactStatus.UPLOAD:
            raise InvalidTransitionError("transcription", artifact.status.value)

        source = self.media.get(artifact.source_ref)

        self._in_flight.add(artifact.id)
        try:
            self._apply(
                artifact,
                status=ArtifactStatus.TRANSCRIBING,
                progress=0,
                error=None,
                transcription=None,
            )
            self._apply(artifact, progress=DISPATCHED_PROGRESS)

            ok, text = await self._call_service(
                artifact,
                "transcription",
                ArtifactStatus.UPLOAD,
                lambda: self.stt.transcribe(
                    source.data,
                    filename=artifact.name,
                    content_type=source.content_type,
                ),
            )
            if ok:
                self._apply(artifact, transcription=text, progress=100, error=None)
        finally:
            self._in_flight.discard(artifact.id)

        return artifact.model_copy()

    async def request_enhancement(
        self,
        artifact_id: UUID | str,
        prompt: str | None = None,
        instructions: str | None = None,
    ) -> str:
        """
        Ask the enhancement service for a rewritten transcript.

        The artifact is not modified: the proposal is returned so the caller
        can edit it before committing it with `accept_enhancement`.

        Raises:
            ServiceUnavailableError: with the service message verbatim
        """
        artifact = self._require(artifact_id)
        if artifact.transcription is None:
            raise InvalidTransitionError(
                "enhancement", artifact.status.value, "No transcription available"
            )

        transcript = artifact.transcription
        instruction = render_instruction(prompt, instructions)
        log = logger.bind(artifact_id=str(artifact.id))
        log.info("Requesting text enhancement", transcript_chars=len(transcript))

        try:
            text = await self.enhancer.enhance(instruction, transcript)
        except ServiceUnavailableError:
            raise
        except Exception as e:
            log.error("Text enhancement failed", error=str(e))
            raise ServiceUnavailableError(ENHANCEMENT_SERVICE, str(e) or "Text processing failed") from e

        log.info("Text enhancement ready", processed_chars=len(text))
        return text

    def accept_enhancement(self, artifact_id: UUID | str, text: str) -> AudioArtifact:
        """Commit processed text and move the artifact to `processing`."""
        artifact = self._require(artifact_id)
        self._check_idle(artifact)

        if artifact.transcription is None or artifact.status not in (
            ArtifactStatus.TRANSCRIBING,
            ArtifactStatus.PROCESSING,
        ):
            raise InvalidTransitionError("accept_enhancement", artifact.status.value)

        cleaned = (text or "").strip()
        if not cleaned:
            raise ValidationError("Processed text must not be empty")

        self._apply(
            artifact,
            processed_text=cleaned,
            status=ArtifactStatus.PROCESSING,
            progress=0,
            error=None,
        )
        logger.info("Processed text accepted", artifact_id=str(artifact.id))
        return artifact.model_copy()

    async def request_synthesis(
        self,
        artifact_id: UUID | str,
        voice: VoiceSettings,
    ) -> AudioArtifact:
        """
        Synthesize the processed text of an artifact in `processing`.

        Success stores the audio and completes the artifact; failure reverts
        it to `processing` with the error recorded.
        """
        artifact = self._require(artifact_id)
        self._check_idle(artifact)
        if not artifact.is_ready_for_synthesis:
            raise InvalidTransitionError("synthesis", artifact.status.value)

        text = artifact.processed_text or ""
        speed = voice.speed if voice.speed != 1.0 else None

        self._in_flight.add(artifact.id)
        try:
            self._apply(artifact, status=ArtifactStatus.GENERATING, progress=0, error=None)
            self._apply(artifact, progress=DISPATCHED_PROGRESS)

            ok, audio = await self._call_service(
                artifact,
                "synthesis",
                ArtifactStatus.PROCESSING,
                lambda: self.tts.synthesize(
                    text,
                    voice=voice.voice_id,
                    response_format=voice.response_format,
                    speed=speed,
                ),
            )
            if ok:
                output_ref = self.media.put(audio, f"audio/{voice.response_format}")
                self._apply(
                    artifact,
                    status=ArtifactStatus.COMPLETE,
                    output_ref=output_ref,
                    output_format=voice.response_format,
                    progress=100,
                    error=None,
                )
        finally:
            self._in_flight.discard(artifact.id)

        return artifact.model_copy()

    # ──────────────────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────────────────

    def _require(self, artifact_id: UUID | str) -> AudioArtifact:
        try:
            key = artifact_id if isinstance(artifact_id, UUID) else UUID(str(artifact_id))
        except ValueError:
            raise NotFoundError(f"Unknown artifact: {artifact_id}") from None

        artifact = self._artifacts.get(key)
        if artifact is None:
            raise NotFoundError(f"Unknown artifact: {artifact_id}")
        return artifact

    def _check_idle(self, artifact: AudioArtifact) -> None:
        if artifact.id in self._in_flight:
            raise ArtifactBusyError(f"Artifact {artifact.id} already has an operation in flight")

    def _apply(self, artifact: AudioArtifact, **changes: Any) -> None:
        for field_name, value in changes.items():
            setattr(artifact, field_name, value)
        self._emit(EventKind.UPDATED, artifact)

    def _emit(self, kind: EventKind, artifact: AudioArtifact) -> None:
        if not self._listeners:
            return
        event = ArtifactEvent(kind=kind, artifact=artifact.model_copy())
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning("Artifact listener failed", error=str(e))

    async def _call_service(
        self,
        artifact: AudioArtifact,
        operation: str,
        revert_to: ArtifactStatus,
        call: Callable[[], Awaitable[T]],
    ) -> tuple[bool, T | None]:
        """Run a service call, reverting the artifact on failure."""
        log = logger.bind(artifact_id=str(artifact.id), operation=operation)
        start = time.perf_counter()

        try:
            log.debug("Stage starting")
            result = await call()
        except asyncio.CancelledError:
            self._apply(artifact, status=revert_to, progress=0, error=f"{operation} interrupted")
            raise
        except Exception as e:
            duration = (time.perf_counter() - start) * 1000
            log.error("Stage failed", error=str(e), duration_ms=duration)
            self._apply(
                artifact,
                status=revert_to,
                progress=0,
                error=str(e) or e.__class__.__name__,
            )
            return False, None

        duration = (time.perf_counter() - start) * 1000
        log.info("Stage completed", duration_ms=duration)
        return True, result
