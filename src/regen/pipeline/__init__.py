"""
Regen Processing Pipeline

Moves audio artifacts through transcription, text enhancement and speech
synthesis:

- Engine: per-artifact state machine over the external services
- Orchestrator: sequential batch runs per stage
- Media: in-memory blob store for source and generated audio
"""

from .engine import (
    ArtifactEvent,
    EventKind,
    PipelineEngine,
    SUPPORTED_EXTENSIONS,
    is_supported_media,
)
from .media import MediaBlob, MediaStore
from .orchestrator import BatchOrchestrator, BatchResult, BatchStage, create_pipeline
from .queue import StageQueue

__all__ = [
    "PipelineEngine",
    "BatchOrchestrator",
    "BatchResult",
    "BatchStage",
    "create_pipeline",
    # Support
    "ArtifactEvent",
    "EventKind",
    "MediaBlob",
    "MediaStore",
    "StageQueue",
    "SUPPORTED_EXTENSIONS",
    "is_supported_media",
]
