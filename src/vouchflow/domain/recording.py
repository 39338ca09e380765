"""Domain models for a testimonial recording session."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from uuid import UUID, uuid4

from vouchflow.domain.campaigns import CampaignParameters, CaptureConstraints
from vouchflow.domain.errors import VouchflowError


class Stage(str, Enum):
    """Lifecycle stages of a recording session."""

    IDLE = "idle"
    AWAITING_DEVICE = "awaiting_device"
    COUNTDOWN = "countdown"
    CAPTURING = "capturing"
    CAPTURED = "captured"
    UPLOADING = "uploading"
    SUBMITTED = "submitted"
    FAILED = "failed"
    ABANDONED = "abandoned"


TERMINAL_STAGES = frozenset({Stage.SUBMITTED, Stage.FAILED, Stage.ABANDONED})


@dataclass(frozen=True)
class UploadProgress:
    """Snapshot of one upload attempt."""

    bytes_sent: int
    bytes_total: int

    @property
    def percentage(self) -> int:
        if self.bytes_total <= 0:
            return 0
        return round(self.bytes_sent / self.bytes_total * 100)


@dataclass(frozen=True)
class LiveHandle:
    """An acquired camera and microphone stream."""

    device: str
    constraints: CaptureConstraints
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class EncoderHandle:
    """A running encoder bound to a live stream."""

    live: LiveHandle
    id: UUID = field(default_factory=uuid4)


@dataclass(eq=False)
class Artifact:
    """A finished, playable recording held locally before upload."""

    data: bytes
    content_type: str
    duration_seconds: int = 0
    path: Path | None = None
    local_id: UUID = field(default_factory=uuid4)
    revoked: bool = False

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @property
    def preview_uri(self) -> str:
        """Local reference a player can open before the upload."""
        if self.path is not None:
            return self.path.as_uri()
        return f"memory:{self.local_id}"

    def revoke(self) -> None:
        """Release the local copy backing the preview. Safe to call twice."""
        if self.revoked:
            return
        self.revoked = True
        if self.path is not None:
            self.path.unlink(missing_ok=True)


@dataclass(frozen=True)
class RemoteReference:
    """Where an uploaded artifact lives in remote storage."""

    public_id: str
    secure_url: str
    duration: float | None = None
    width: int | None = None
    height: int | None = None
    format: str | None = None


@dataclass(frozen=True)
class SubmissionRecord:
    """Metadata persisted once a recording has been uploaded."""

    campaign_id: str
    remote_video_ref: RemoteReference
    thumbnail_ref: str
    duration_seconds: int
    idempotency_key: UUID


@dataclass
class Session:
    """Mutable state of one recording attempt, owned by its controller."""

    campaign: CampaignParameters | None
    max_duration_seconds: int
    stage: Stage = Stage.IDLE
    prompt_index: int = 0
    visited_prompts: set[int] = field(default_factory=set)
    elapsed_seconds: int = 0
    countdown_remaining: int | None = None
    artifact: Artifact | None = None
    progress: UploadProgress | None = None
    error: VouchflowError | None = None

    @property
    def prompts(self) -> tuple[str, ...]:
        return self.campaign.prompts if self.campaign else ()

    @property
    def current_prompt(self) -> str | None:
        prompts = self.prompts
        if not prompts:
            return None
        return prompts[self.prompt_index]

    @property
    def remaining_seconds(self) -> int:
        return max(self.max_duration_seconds - self.elapsed_seconds, 0)

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES
