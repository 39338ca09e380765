"""Video endpoints for submissions and campaign owners."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from vouchflow.api.auth import require_user
from vouchflow.api.models import VideoCreate
from vouchflow.services.videos import DeleteOutcome, DuplicateVideoError

if TYPE_CHECKING:
    from vouchflow.containers import AppContainer
    from vouchflow.domain.campaigns import VideoRecord

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_video(payload: VideoCreate, request: Request) -> dict[str, object]:
    """Record an uploaded testimonial against its campaign."""
    container: AppContainer = request.app.state.container
    try:
        video = container.video_service.create_video(
            campaign_id=payload.campaign_id,
            video_url=payload.video_url,
            public_id=payload.public_id,
            thumbnail_url=payload.thumbnail_url,
            submitter_name=payload.submitter_name,
            submitter_email=payload.submitter_email,
            duration=payload.duration,
        )
    except DuplicateVideoError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Video already exists"
        ) from exc
    if video is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found"
        )
    return _video_payload(video)


@router.get("")
async def list_videos(
    campaign_id: str, request: Request, user_id: str = Depends(require_user)
) -> list[dict[str, object]]:
    """Return the videos of a campaign the caller owns."""
    container: AppContainer = request.app.state.container
    videos = container.video_service.list_videos(campaign_id, user_id)
    if videos is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found"
        )
    return [_video_payload(video) for video in videos]


@router.delete("/{video_id}")
async def delete_video(
    video_id: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, bool]:
    """Delete a video from a campaign the caller owns."""
    container: AppContainer = request.app.state.container
    outcome = container.video_service.delete_video(video_id, user_id)
    if outcome is DeleteOutcome.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if outcome is DeleteOutcome.FORBIDDEN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return {"success": True}


def _video_payload(video: VideoRecord) -> dict[str, object]:
    payload = asdict(video)
    payload["created_at"] = video.created_at.isoformat() if video.created_at else None
    return payload
