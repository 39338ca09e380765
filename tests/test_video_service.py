"""Tests for submission persistence and video management."""

from uuid import uuid4

import pytest

from tests.conftest import (
    OTHER_USER_ID,
    OWNER_ID,
    InMemoryCampaignRepository,
    InMemoryVideoRepository,
    make_campaign,
)
from vouchflow.domain.recording import RemoteReference, SubmissionRecord
from vouchflow.services.campaigns import CampaignService
from vouchflow.services.videos import DeleteOutcome, DuplicateVideoError, VideoService


def _service() -> tuple[VideoService, InMemoryVideoRepository, str]:
    campaign = make_campaign()
    campaigns = InMemoryCampaignRepository(campaigns={campaign.id: campaign})
    videos = InMemoryVideoRepository()
    return VideoService(videos, CampaignService(campaigns)), videos, campaign.id


def _submission(campaign_id: str, duration: float | None = 31.5) -> SubmissionRecord:
    key = uuid4()
    return SubmissionRecord(
        campaign_id=campaign_id,
        remote_video_ref=RemoteReference(
            public_id=f"vouchflow/{key}",
            secure_url=f"https://res.cloudinary.com/c/video/upload/{key}.webm",
            duration=duration,
        ),
        thumbnail_ref="https://res.cloudinary.com/c/video/upload/thumb.jpg",
        duration_seconds=31,
        idempotency_key=key,
    )


def test_record_submission_stores_a_ready_video() -> None:
    service, videos, campaign_id = _service()

    video = service.record_submission(_submission(campaign_id))

    assert video.status == "ready"
    assert video.duration == 31.5
    assert video.thumbnail_url.endswith("thumb.jpg")
    assert list(videos.videos) == [video.id]


def test_record_submission_falls_back_to_local_duration() -> None:
    service, _, campaign_id = _service()

    video = service.record_submission(_submission(campaign_id, duration=None))

    assert video.duration == 31


def test_record_submission_is_idempotent() -> None:
    service, videos, campaign_id = _service()
    submission = _submission(campaign_id)

    first = service.record_submission(submission)
    second = service.record_submission(submission)

    assert first.id == second.id
    assert len(videos.videos) == 1


def test_create_video_requires_an_existing_campaign() -> None:
    service, videos, campaign_id = _service()

    created = service.create_video(campaign_id, "https://cdn.test/a.webm", duration=0)
    missing = service.create_video(str(uuid4()), "https://cdn.test/b.webm")
    malformed = service.create_video("demo", "https://cdn.test/c.webm")

    assert created is not None
    assert created.duration is None
    assert missing is None
    assert malformed is None
    assert len(videos.videos) == 1


def test_create_video_never_overwrites_an_existing_public_id() -> None:
    service, videos, campaign_id = _service()
    original = service.record_submission(_submission(campaign_id))

    with pytest.raises(DuplicateVideoError):
        service.create_video(
            campaign_id,
            "https://attacker.test/replaced.webm",
            public_id=original.public_id,
            submitter_name="Mallory",
        )

    assert list(videos.videos.values()) == [original]


def test_create_video_without_public_id_always_inserts() -> None:
    service, videos, campaign_id = _service()

    service.create_video(campaign_id, "https://cdn.test/a.webm")
    service.create_video(campaign_id, "https://cdn.test/a.webm")

    assert len(videos.videos) == 2


def test_record_submission_updates_the_row_for_its_public_id() -> None:
    service, videos, campaign_id = _service()
    submission = _submission(campaign_id, duration=None)
    first = service.record_submission(submission)
    retried = SubmissionRecord(
        campaign_id=campaign_id,
        remote_video_ref=RemoteReference(
            public_id=submission.remote_video_ref.public_id,
            secure_url=submission.remote_video_ref.secure_url,
            duration=33.0,
        ),
        thumbnail_ref=submission.thumbnail_ref,
        duration_seconds=submission.duration_seconds,
        idempotency_key=submission.idempotency_key,
    )

    second = service.record_submission(retried)

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.duration == 33.0
    assert list(videos.videos.values()) == [second]


def test_list_videos_only_for_owner() -> None:
    service, _, campaign_id = _service()
    service.create_video(campaign_id, "https://cdn.test/a.webm")

    assert len(service.list_videos(campaign_id, OWNER_ID)) == 1
    assert service.list_videos(campaign_id, OTHER_USER_ID) is None


def test_delete_video_outcomes() -> None:
    service, videos, campaign_id = _service()
    video = service.create_video(campaign_id, "https://cdn.test/a.webm")

    assert service.delete_video("missing", OWNER_ID) is DeleteOutcome.NOT_FOUND
    assert service.delete_video(video.id, OTHER_USER_ID) is DeleteOutcome.FORBIDDEN
    assert service.delete_video(video.id, OWNER_ID) is DeleteOutcome.DELETED
    assert videos.videos == {}
