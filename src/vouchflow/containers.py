"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from vouchflow.adapters.cloudinary_upload_transport import CloudinaryUploadTransport
from vouchflow.adapters.ffmpeg_capture import FfmpegEncoderSink, V4l2CaptureDevice
from vouchflow.adapters.supabase_campaign_repository import (
    SupabaseCampaignRepository,
)
from vouchflow.adapters.supabase_identity_provider import (
    IdentityProvider,
    SupabaseIdentityProvider,
)
from vouchflow.adapters.supabase_video_repository import SupabaseVideoRepository
from vouchflow.config import Settings
from vouchflow.services.campaigns import CampaignService
from vouchflow.services.recording import RecordingSessionFactory
from vouchflow.services.scheduling import AsyncioScheduler
from vouchflow.services.videos import VideoService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_provider: IdentityProvider
    campaign_service: CampaignService
    video_service: VideoService
    recording_factory: RecordingSessionFactory
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    campaign_service = CampaignService(SupabaseCampaignRepository(supabase_client))
    video_service = VideoService(
        repository=SupabaseVideoRepository(supabase_client),
        campaign_service=campaign_service,
    )
    transport = CloudinaryUploadTransport.create(
        cloud_name=resolved_settings.cloudinary_cloud_name,
        upload_preset=resolved_settings.cloudinary_upload_preset,
        folder=resolved_settings.cloudinary_folder,
        chunk_size=resolved_settings.upload_chunk_size_bytes,
    )
    recordings_dir = (
        Path(resolved_settings.recordings_dir)
        if resolved_settings.recordings_dir
        else None
    )
    recording_factory = RecordingSessionFactory(
        campaign_provider=campaign_service,
        capture_device=V4l2CaptureDevice(video_device=resolved_settings.camera_device),
        encoder=FfmpegEncoderSink(
            audio_device=resolved_settings.audio_device,
            ffmpeg_binary=resolved_settings.ffmpeg_binary,
            output_dir=recordings_dir,
        ),
        transport=transport,
        recorder=video_service,
        scheduler=AsyncioScheduler(),
        max_duration_seconds=resolved_settings.max_recording_seconds,
    )

    async def close_resources() -> None:
        await transport.close()

    return AppContainer(
        settings=resolved_settings,
        identity_provider=SupabaseIdentityProvider(supabase_client),
        campaign_service=campaign_service,
        video_service=video_service,
        recording_factory=recording_factory,
        close_resources=close_resources,
    )
