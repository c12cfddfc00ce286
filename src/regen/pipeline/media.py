"""
Media Store

In-memory blob storage for source payloads and synthesized audio,
addressed by opaque references.
"""

from dataclasses import dataclass
from uuid import uuid4

import structlog

from regen.core.errors import NotFoundError

logger = structlog.get_logger()

REF_PREFIX = "media://"


@dataclass(frozen=True)
class MediaBlob:
    """A stored binary payload."""

    data: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


class MediaStore:
    """Blob store keyed by `media://<uuid>` references."""

    def __init__(self) -> None:
        self._blobs: dict[str, MediaBlob] = {}

    def __contains__(self, ref: object) -> bool:
        return ref in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    def put(self, data: bytes, content_type: str | None = None) -> str:
        """Store data and return its reference."""
        ref = f"{REF_PREFIX}{uuid4()}"
        self._blobs[ref] = MediaBlob(data=bytes(data), content_type=content_type)
        return ref

    def get(self, ref: str) -> MediaBlob:
        try:
            return self._blobs[ref]
        except KeyError:
            raise NotFoundError(f"Unknown media reference: {ref}") from None

    def discard(self, ref: str | None) -> None:
        """Release a blob; unknown or empty references are ignored."""
        if ref and self._blobs.pop(ref, None) is not None:
            logger.debug("Media released", ref=ref)
