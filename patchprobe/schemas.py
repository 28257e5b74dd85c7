from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from patchprobe.errors import ProbeError


class ProbeStatus(str, Enum):
    succeeded = "succeeded"
    failed = "failed"
    timed_out = "timed_out"


# ============================================================================
# Engine Models
# ============================================================================

class ImageDescriptor(BaseModel):
    """An image as reported by the container engine."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Engine image identifier (cache key).")
    repo_tags: List[str] = Field(default_factory=list, description="repo:tag references.")
    created: int = Field(0, description="Creation time in unix seconds.")
    size: int = Field(0, description="Image size in bytes.")

    @property
    def reference(self) -> str:
        """Reference used to start containers: first tag, else the id."""
        return self.repo_tags[0] if self.repo_tags else self.id

    @property
    def repository(self) -> str:
        return _split_reference(self.repo_tags[0])[0] if self.repo_tags else "<none>"

    @property
    def tag(self) -> str:
        return _split_reference(self.repo_tags[0])[1] if self.repo_tags else "<none>"

    @property
    def short_id(self) -> str:
        return self.id.split(":", 1)[-1][:12]


def _split_reference(reference: str) -> tuple[str, str]:
    # A colon before the last slash belongs to a registry port, not a tag.
    colon = reference.rfind(":")
    if colon > reference.rfind("/"):
        return reference[:colon], reference[colon + 1:]
    return reference, "latest"


class ContainerHandle(BaseModel):
    """Identity of a disposable container created for one probe."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


# ============================================================================
# Probe Results
# ============================================================================

class ProbeOutcome(BaseModel):
    """Result of one create/start/wait/remove cycle."""

    status: ProbeStatus
    reason: Optional[str] = Field(
        None,
        description="create, start, log_read, command, wait or timeout when not succeeded."
    )
    exit_code: Optional[int] = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == ProbeStatus.succeeded

    @classmethod
    def success(cls) -> ProbeOutcome:
        return cls(status=ProbeStatus.succeeded, exit_code=0)

    @classmethod
    def from_error(cls, error: ProbeError) -> ProbeOutcome:
        status = ProbeStatus.timed_out if error.reason == "timeout" else ProbeStatus.failed
        return cls(
            status=status,
            reason=error.reason,
            exit_code=getattr(error, "exit_code", None),
            message=str(error),
        )


class ImageClassification(BaseModel):
    """Classification of one image for display."""

    image: ImageDescriptor
    matched: bool
    cached: bool = False


# ============================================================================
# Cache Models
# ============================================================================

class CacheEntry(BaseModel):
    """Persisted record of classified images.

    An image id is in at most one of ``matched`` and ``unmatched``. Both lists
    keep insertion order so the on-disk file is stable between runs.
    """
    model_config = ConfigDict(populate_by_name=True)

    valid: bool = Field(False, alias="Valid")
    matched: List[str] = Field(default_factory=list, alias="Matched")
    unmatched: List[str] = Field(default_factory=list, alias="Unmatched")

    def lookup(self, image_id: str) -> Optional[bool]:
        """Return the cached classification, or None on a miss."""
        if image_id in self.matched:
            return True
        if image_id in self.unmatched:
            return False
        return None

    def add(self, image_id: str, matched: bool) -> None:
        target, other = (self.matched, self.unmatched) if matched else (self.unmatched, self.matched)
        if image_id in other:
            other.remove(image_id)
        if image_id not in target:
            target.append(image_id)

    def clear(self) -> None:
        self.valid = False
        self.matched.clear()
        self.unmatched.clear()
