"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from vouchflow.adapters.supabase_identity_provider import IdentityProvider
from vouchflow.config import Settings
from vouchflow.containers import AppContainer
from vouchflow.domain.campaigns import (
    AspectRatio,
    CampaignRecord,
    CaptureConstraints,
    VideoRecord,
)
from vouchflow.domain.recording import (
    Artifact,
    EncoderHandle,
    LiveHandle,
    RemoteReference,
    UploadProgress,
)
from vouchflow.services.campaigns import CampaignRepository, CampaignService
from vouchflow.services.recording import (
    CaptureDevice,
    EncoderSink,
    ProgressCallback,
    RecordingSessionController,
    RecordingSessionFactory,
    UploadTransport,
)
from vouchflow.services.scheduling import Scheduler, TimerCallback, TimerHandle
from vouchflow.services.videos import VideoRepository, VideoService

OWNER_ID = "owner-1"
OTHER_USER_ID = "owner-2"


@dataclass
class FakeCaptureDevice(CaptureDevice):
    """Capture device that hands out handles and records the call order."""

    error: Exception | None = None
    events: list[str] = field(default_factory=list)
    constraints: list[CaptureConstraints] = field(default_factory=list)
    active: set[UUID] = field(default_factory=set)
    acquire_count: int = 0
    release_count: int = 0
    gate: asyncio.Event | None = None

    async def acquire(self, constraints: CaptureConstraints) -> LiveHandle:
        self.events.append("acquire")
        self.constraints.append(constraints)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        assert not self.active, "a second live handle was requested"
        handle = LiveHandle(device="/dev/fake", constraints=constraints)
        self.active.add(handle.id)
        self.acquire_count += 1
        return handle

    def release(self, handle: LiveHandle) -> None:
        self.events.append("release")
        if handle.id in self.active:
            self.active.discard(handle.id)
            self.release_count += 1


@dataclass
class FakeEncoderSink(EncoderSink):
    """Encoder that emits a fixed set of chunks per recording."""

    chunks: list[bytes] = field(default_factory=lambda: [b"chunk-1", b"chunk-2"])
    start_error: Exception | None = None
    stop_error: Exception | None = None
    start_count: int = 0
    stop_count: int = 0
    running: dict[UUID, list[bytes]] = field(default_factory=dict)

    async def start(self, live: LiveHandle) -> EncoderHandle:
        if self.start_error is not None:
            raise self.start_error
        self.start_count += 1
        handle = EncoderHandle(live=live)
        self.running[handle.id] = list(self.chunks)
        return handle

    async def stop(self, handle: EncoderHandle) -> Artifact:
        self.stop_count += 1
        chunks = self.running.pop(handle.id)
        if self.stop_error is not None:
            raise self.stop_error
        return Artifact(data=b"".join(chunks), content_type="video/webm")


@dataclass
class FakeUploadTransport(UploadTransport):
    """Upload transport reporting scripted progress and failures."""

    percentages: list[int] = field(default_factory=lambda: [50, 100])
    failures: list[Exception] = field(default_factory=list)
    uploads: list[UUID] = field(default_factory=list)
    reported: list[int] = field(default_factory=list)
    gate: asyncio.Event | None = None

    async def upload(
        self, artifact: Artifact, on_progress: ProgressCallback
    ) -> RemoteReference:
        self.uploads.append(artifact.local_id)
        for percentage in self.percentages:
            self.reported.append(percentage)
            on_progress(UploadProgress(percentage, 100))
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)
        return RemoteReference(
            public_id=f"vouchflow/{artifact.local_id}",
            secure_url=f"https://cdn.test/vouchflow/{artifact.local_id}.webm",
            duration=12.5,
        )

    def thumbnail_url(self, reference: RemoteReference) -> str:
        return f"https://cdn.test/{reference.public_id}.jpg"


@dataclass
class _ManualTimer(TimerHandle):
    callback: TimerCallback
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler(Scheduler):
    """Scheduler whose one-second timers fire only when advanced."""

    timers: list[_ManualTimer] = field(default_factory=list)

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        timer = _ManualTimer(callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[_ManualTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    async def advance(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            due, self.timers = self.pending, []
            for timer in due:
                if not timer.cancelled:
                    await timer.callback()


@dataclass
class InMemoryCampaignRepository(CampaignRepository):
    """In-memory campaign repository for tests."""

    campaigns: dict[str, CampaignRecord] = field(default_factory=dict)
    error: Exception | None = None

    def get_campaign(self, campaign_id: str) -> CampaignRecord | None:
        if self.error is not None:
            raise self.error
        return self.campaigns.get(campaign_id)

    def list_campaigns(self, user_id: str) -> list[CampaignRecord]:
        return [c for c in self.campaigns.values() if c.user_id == user_id]

    def create_campaign(self, payload: dict[str, object]) -> CampaignRecord:
        record = CampaignRecord(
            id=str(uuid4()),
            user_id=str(payload["user_id"]),
            name=str(payload["name"]),
            company_name=payload.get("company_name"),
            logo_url=payload.get("logo_url"),
            brand_color=str(payload["brand_color"]),
            secondary_color=str(payload["secondary_color"]),
            aspect_ratio=AspectRatio(payload["aspect_ratio"]),
            prompts=list(payload["prompts"]),
            created_at=datetime.now(tz=UTC),
        )
        self.campaigns[record.id] = record
        return record

    def update_campaign(
        self, campaign_id: str, user_id: str, changes: dict[str, object]
    ) -> CampaignRecord | None:
        current = self.campaigns.get(campaign_id)
        if current is None or current.user_id != user_id:
            return None
        if "aspect_ratio" in changes:
            changes = {**changes, "aspect_ratio": AspectRatio(changes["aspect_ratio"])}
        updated = replace(current, **changes)
        self.campaigns[campaign_id] = updated
        return updated

    def delete_campaign(self, campaign_id: str, user_id: str) -> None:
        current = self.campaigns.get(campaign_id)
        if current is not None and current.user_id == user_id:
            del self.campaigns[campaign_id]


@dataclass
class InMemoryVideoRepository(VideoRepository):
    """In-memory video repository for tests."""

    videos: dict[str, VideoRecord] = field(default_factory=dict)
    error: Exception | None = None

    def insert_video(self, payload: dict[str, object]) -> VideoRecord:
        if self.error is not None:
            raise self.error
        public_id = payload.get("public_id")
        if public_id and self.get_video_by_public_id(str(public_id)) is not None:
            raise ValueError(f"duplicate public_id {public_id}")
        duration = payload.get("duration")
        video = VideoRecord(
            id=str(uuid4()),
            campaign_id=str(payload["campaign_id"]),
            video_url=str(payload["video_url"]),
            public_id=public_id,
            thumbnail_url=payload.get("thumbnail_url"),
            submitter_name=payload.get("submitter_name"),
            submitter_email=payload.get("submitter_email"),
            duration=float(duration) if duration is not None else None,
            status=str(payload.get("status", "ready")),
            created_at=datetime.now(tz=UTC),
        )
        self.videos[video.id] = video
        return video

    def upsert_video(self, payload: dict[str, object]) -> VideoRecord:
        if self.error is not None:
            raise self.error
        current = self.get_video_by_public_id(str(payload["public_id"]))
        if current is None:
            return self.insert_video(payload)
        changes = {k: v for k, v in payload.items() if k not in {"id", "created_at"}}
        if changes.get("duration") is not None:
            changes["duration"] = float(changes["duration"])
        updated = replace(current, **changes)
        self.videos[updated.id] = updated
        return updated

    def get_video(self, video_id: str) -> VideoRecord | None:
        return self.videos.get(video_id)

    def get_video_by_public_id(self, public_id: str) -> VideoRecord | None:
        for video in self.videos.values():
            if video.public_id == public_id:
                return video
        return None

    def list_videos(self, campaign_id: str) -> list[VideoRecord]:
        return [v for v in self.videos.values() if v.campaign_id == campaign_id]

    def delete_video(self, video_id: str) -> None:
        self.videos.pop(video_id, None)


@dataclass
class FakeIdentityProvider(IdentityProvider):
    """Maps fixed bearer tokens to user ids."""

    tokens: dict[str, str] = field(
        default_factory=lambda: {"owner-token": OWNER_ID, "other-token": OTHER_USER_ID}
    )

    def resolve_user_id(self, access_token: str) -> str | None:
        return self.tokens.get(access_token)


def make_campaign(
    user_id: str = OWNER_ID,
    prompts: list[str] | None = None,
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT,
) -> CampaignRecord:
    return CampaignRecord(
        id=str(uuid4()),
        user_id=user_id,
        name="Spring testimonials",
        company_name="Acme",
        logo_url=None,
        brand_color="#4F46E5",
        secondary_color="#1E293B",
        aspect_ratio=aspect_ratio,
        prompts=prompts if prompts is not None else ["One?", "Two?", "Three?"],
        created_at=datetime.now(tz=UTC),
    )


@dataclass
class RecordingRig:
    """A controller wired to fakes, plus handles on each fake."""

    controller: RecordingSessionController
    device: FakeCaptureDevice
    encoder: FakeEncoderSink
    transport: FakeUploadTransport
    scheduler: ManualScheduler
    campaigns: InMemoryCampaignRepository
    videos: InMemoryVideoRepository

    async def start_capturing(self) -> None:
        await self.controller.start()
        await self.scheduler.advance(3)


def build_rig(
    campaign: CampaignRecord | None = None,
    campaign_id: str | None = None,
    max_duration_seconds: int = 60,
) -> RecordingRig:
    """Wire a controller for ``campaign`` (or the given id) to fakes."""
    campaigns = InMemoryCampaignRepository()
    if campaign is not None:
        campaigns.campaigns[campaign.id] = campaign
    campaign_service = CampaignService(campaigns)
    videos = InMemoryVideoRepository()
    device = FakeCaptureDevice()
    encoder = FakeEncoderSink()
    transport = FakeUploadTransport()
    scheduler = ManualScheduler()
    factory = RecordingSessionFactory(
        campaign_provider=campaign_service,
        capture_device=device,
        encoder=encoder,
        transport=transport,
        recorder=VideoService(videos, campaign_service),
        scheduler=scheduler,
        max_duration_seconds=max_duration_seconds,
    )
    resolved_id = campaign_id or (campaign.id if campaign else "demo")
    return RecordingRig(
        controller=factory.create(resolved_id),
        device=device,
        encoder=encoder,
        transport=transport,
        scheduler=scheduler,
        campaigns=campaigns,
        videos=videos,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="test.service.key",
        cloudinary_cloud_name="demo-cloud",
    )


@pytest.fixture
def campaign_repository() -> InMemoryCampaignRepository:
    return InMemoryCampaignRepository()


@pytest.fixture
def video_repository() -> InMemoryVideoRepository:
    return InMemoryVideoRepository()


@pytest.fixture
def container(
    settings: Settings,
    campaign_repository: InMemoryCampaignRepository,
    video_repository: InMemoryVideoRepository,
) -> AppContainer:
    campaign_service = CampaignService(campaign_repository)
    video_service = VideoService(video_repository, campaign_service)
    recording_factory = RecordingSessionFactory(
        campaign_provider=campaign_service,
        capture_device=FakeCaptureDevice(),
        encoder=FakeEncoderSink(),
        transport=FakeUploadTransport(),
        recorder=video_service,
        scheduler=ManualScheduler(),
        max_duration_seconds=settings.max_recording_seconds,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        identity_provider=FakeIdentityProvider(),
        campaign_service=campaign_service,
        video_service=video_service,
        recording_factory=recording_factory,
        close_resources=close_resources,
    )
