"""Submitted video persistence and owner-facing management."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from vouchflow.domain.campaigns import VideoRecord
from vouchflow.domain.recording import SubmissionRecord
from vouchflow.services.campaigns import CampaignService

logger = logging.getLogger(__name__)


class VideoRepository(Protocol):
    """Persistence interface for submitted videos."""

    def insert_video(self, payload: dict[str, object]) -> VideoRecord:
        """Insert a new video row."""

    def upsert_video(self, payload: dict[str, object]) -> VideoRecord:
        """Insert a video row, or update the row with the same public id."""

    def get_video(self, video_id: str) -> VideoRecord | None:
        """Return a video by id, if present."""

    def get_video_by_public_id(self, public_id: str) -> VideoRecord | None:
        """Return the video stored under a storage public id, if present."""

    def list_videos(self, campaign_id: str) -> list[VideoRecord]:
        """Return a campaign's videos, newest first."""

    def delete_video(self, video_id: str) -> None:
        """Delete a video row."""


class DuplicateVideoError(Exception):
    """A video with the same storage public id already exists."""

    def __init__(self, public_id: str) -> None:
        super().__init__(f"Video {public_id} already exists")
        self.public_id = public_id


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


@dataclass
class VideoService:
    """Records testimonial submissions and serves them to campaign owners."""

    repository: VideoRepository
    campaign_service: CampaignService

    def record_submission(self, submission: SubmissionRecord) -> VideoRecord:
        """Persist an uploaded recording. Safe to repeat for the same upload."""
        remote = submission.remote_video_ref
        video = self.repository.upsert_video(
            {
                "campaign_id": submission.campaign_id,
                "video_url": remote.secure_url,
                "public_id": remote.public_id,
                "thumbnail_url": submission.thumbnail_ref or None,
                "duration": remote.duration or submission.duration_seconds,
                "status": "ready",
            }
        )
        logger.info(
            "Recorded submission %s for campaign %s",
            submission.idempotency_key,
            submission.campaign_id,
        )
        return video

    def create_video(  # noqa: PLR0913
        self,
        campaign_id: str,
        video_url: str,
        public_id: str | None = None,
        thumbnail_url: str | None = None,
        submitter_name: str | None = None,
        submitter_email: str | None = None,
        duration: float | None = None,
    ) -> VideoRecord | None:
        """Create a video for an existing campaign. Returns None if it's missing.

        Raises DuplicateVideoError when ``public_id`` is already taken, so an
        existing row is never overwritten.
        """
        if not self.campaign_service.campaign_exists(campaign_id):
            return None
        if public_id and self.repository.get_video_by_public_id(public_id) is not None:
            raise DuplicateVideoError(public_id)
        return self.repository.insert_video(
            {
                "campaign_id": campaign_id,
                "video_url": video_url,
                "public_id": public_id,
                "thumbnail_url": thumbnail_url or None,
                "submitter_name": submitter_name or None,
                "submitter_email": submitter_email or None,
                "duration": duration or None,
                "status": "ready",
            }
        )

    def list_videos(self, campaign_id: str, user_id: str) -> list[VideoRecord] | None:
        """Return a campaign's videos, or None if the user doesn't own it."""
        if self.campaign_service.get_owned_campaign(campaign_id, user_id) is None:
            return None
        return self.repository.list_videos(campaign_id)

    def delete_video(self, video_id: str, user_id: str) -> DeleteOutcome:
        """Delete a video if the user owns its campaign."""
        video = self.repository.get_video(video_id)
        if video is None:
            return DeleteOutcome.NOT_FOUND
        if self.campaign_service.get_owned_campaign(video.campaign_id, user_id) is None:
            return DeleteOutcome.FORBIDDEN
        self.repository.delete_video(video_id)
        logger.info("Deleted video %s", video_id)
        return DeleteOutcome.DELETED
