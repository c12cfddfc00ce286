"""
Batch Orchestrator

Drives the pipeline engine across every eligible artifact of a stage.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

import structlog

from regen.core.errors import ArtifactBusyError, InvalidTransitionError, NotFoundError
from regen.core.models import ArtifactStatus, AudioArtifact, VoiceSettings
from regen.core.settings_store import SettingsStore

from .engine import PipelineEngine
from .queue import StageQueue

logger = structlog.get_logger()


# ══════════════════════════════════════════════════════════════
# Results
# ══════════════════════════════════════════════════════════════


class BatchStage(str, Enum):
    """Stages that can be run as a batch."""

    TRANSCRIBE = "transcribe"
    GENERATE = "generate"


@dataclass
class BatchResult:
    """Outcome of one batch invocation."""

    stage: BatchStage

    # Artifact ids, in processing order
    attempted: list[UUID] = field(default_factory=list)
    succeeded: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)

    # True when another batch of the same stage was already running
    rejected: bool = False
    processing_time_ms: float = 0

    @property
    def success(self) -> bool:
        return not self.rejected and not self.failed


# ══════════════════════════════════════════════════════════════
# Orchestrator
# ══════════════════════════════════════════════════════════════


class BatchOrchestrator:
    """
    Runs `transcribe_all` and `generate_audio_all` batches.

    Each batch works on a snapshot of the artifacts eligible when it was
    invoked, one artifact at a time in insertion order. One artifact failing
    does not stop the others. At most one batch per stage runs at a time; a
    second invocation while busy is rejected without touching any artifact.

    Usage:
        orchestrator = BatchOrchestrator(engine, settings_store)
        result = await orchestrator.transcribe_all()
    """

    def __init__(self, engine: PipelineEngine, settings_store: SettingsStore):
        self.engine = engine
        self.settings_store = settings_store
        self._queues: dict[BatchStage, StageQueue[UUID]] = {
            stage: StageQueue(stage.value) for stage in BatchStage
        }

    def is_running(self, stage: BatchStage) -> bool:
        """Whether a batch of this stage is in flight."""
        return self._queues[stage].is_busy

    def eligible(self, stage: BatchStage) -> list[AudioArtifact]:
        """Artifacts a batch of this stage would process right now."""
        if stage == BatchStage.TRANSCRIBE:
            return self.engine.list_artifacts(ArtifactStatus.UPLOAD)
        return [
            a
            for a in self.engine.list_artifacts(ArtifactStatus.PROCESSING)
            if a.processed_text is not None
        ]

    async def transcribe_all(self) -> BatchResult:
        """Transcribe every artifact currently in the upload stage."""
        return await self._run_batch(
            BatchStage.TRANSCRIBE,
            self.engine.request_transcription,
        )

    async def generate_audio_all(self, voice: VoiceSettings | None = None) -> BatchResult:
        """
        Synthesize audio for every artifact in processing with processed text.

        Args:
            voice: Voice parameters; defaults to the current user settings
        """
        voice = voice or self.settings_store.current.voice

        async def synthesize(artifact_id: UUID) -> AudioArtifact:
            return await self.engine.request_synthesis(artifact_id, voice)

        return await self._run_batch(BatchStage.GENERATE, synthesize)

    async def _run_batch(
        self,
        stage: BatchStage,
        handler: Callable[[UUID], Awaitable[AudioArtifact]],
    ) -> BatchResult:
        queue = self._queues[stage]
        result = BatchResult(stage=stage)
        log = logger.bind(stage=stage.value)

        if queue.is_busy:
            log.warning("Batch already running, request ignored")
            result.rejected = True
            return result

        snapshot = [a.id for a in self.eligible(stage)]
        if not snapshot:
            log.info("No eligible artifacts")
            return result

        start_time = time.perf_counter()
        task = queue.submit_batch(snapshot, handler)
        if task is None:
            result.rejected = True
            return result

        log.info("Batch started", count=len(snapshot))

        # Once dispatched a batch always runs to completion
        outcomes = await asyncio.shield(task)

        for artifact_id, outcome in outcomes:
            self._classify(stage, result, artifact_id, outcome)

        result.processing_time_ms = (time.perf_counter() - start_time) * 1000
        log.info(
            "Batch complete",
            attempted=len(result.attempted),
            succeeded=len(result.succeeded),
            failed=len(result.failed),
            skipped=len(result.skipped),
            processing_time_ms=result.processing_time_ms,
        )
        return result

    def _classify(
        self,
        stage: BatchStage,
        result: BatchResult,
        artifact_id: UUID,
        outcome: Any,
    ) -> None:
        # The artifact changed state between snapshot and its turn
        if isinstance(outcome, (InvalidTransitionError, ArtifactBusyError, NotFoundError)):
            logger.info("Artifact skipped", artifact_id=str(artifact_id), reason=str(outcome))
            result.skipped.append(artifact_id)
            return

        result.attempted.append(artifact_id)

        if isinstance(outcome, AudioArtifact) and outcome.error is None:
            done = (
                outcome.transcription is not None
                if stage == BatchStage.TRANSCRIBE
                else outcome.status == ArtifactStatus.COMPLETE
            )
            if done:
                result.succeeded.append(artifact_id)
                return

        result.failed.append(artifact_id)


# ══════════════════════════════════════════════════════════════
# Factory Function
# ══════════════════════════════════════════════════════════════


def create_pipeline(settings_store: SettingsStore) -> BatchOrchestrator:
    """Create an orchestrator wired to the configured external services."""
    from regen.integrations import (
        SpeechSynthesisClient,
        SpeechToTextClient,
        TextEnhancementClient,
    )

    engine = PipelineEngine(
        stt=SpeechToTextClient(),
        enhancer=TextEnhancementClient(),
        tts=SpeechSynthesisClient(),
    )
    return BatchOrchestrator(engine, settings_store)
