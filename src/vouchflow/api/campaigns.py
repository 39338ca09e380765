"""Campaign endpoints: public lookup for recording pages, owner management."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from vouchflow.api.auth import require_user
from vouchflow.api.models import CampaignCreate, CampaignUpdate
from vouchflow.domain.branding import build_theme
from vouchflow.domain.errors import MetadataFetchError, MetadataFetchErrorKind

if TYPE_CHECKING:
    from vouchflow.containers import AppContainer
    from vouchflow.domain.campaigns import CampaignRecord

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.get("")
async def list_campaigns(
    request: Request, user_id: str = Depends(require_user)
) -> list[dict[str, object]]:
    """Return the caller's campaigns with video counts, newest first."""
    container: AppContainer = request.app.state.container
    return [
        _campaign_payload(record)
        for record in container.campaign_service.list_campaigns(user_id)
    ]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_campaign(
    payload: CampaignCreate, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Create a campaign owned by the caller."""
    container: AppContainer = request.app.state.container
    record = container.campaign_service.create_campaign(
        user_id=user_id,
        name=payload.name,
        company_name=payload.company_name,
        logo_url=payload.logo_url,
        brand_color=payload.brand_color,
        secondary_color=payload.secondary_color,
        aspect_ratio=payload.aspect_ratio,
        prompts=payload.prompts,
    )
    return _campaign_payload(record)


@router.get("/{campaign_id}")
async def get_campaign(campaign_id: str, request: Request) -> dict[str, object]:
    """Public campaign lookup used by the recording page."""
    container: AppContainer = request.app.state.container
    try:
        campaign = container.campaign_service.fetch_campaign(campaign_id)
    except MetadataFetchError as exc:
        code = (
            status.HTTP_404_NOT_FOUND
            if exc.kind is MetadataFetchErrorKind.NOT_FOUND
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        raise HTTPException(status_code=code, detail=exc.user_message) from exc
    constraints = campaign.constraints
    return {
        "id": campaign.campaign_id,
        "name": campaign.name,
        "company_name": campaign.company_name,
        "logo_url": campaign.logo_url,
        "prompts": list(campaign.prompts),
        "aspect_ratio": campaign.aspect_ratio.value,
        "capture": {"width": constraints.width, "height": constraints.height},
        "max_recording_seconds": container.settings.max_recording_seconds,
        "is_demo": campaign.is_demo,
        "theme": asdict(
            build_theme(campaign.primary_color, campaign.secondary_color)
        ),
    }


@router.patch("/{campaign_id}")
async def update_campaign(
    campaign_id: str,
    payload: CampaignUpdate,
    request: Request,
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Apply a partial update to one of the caller's campaigns."""
    container: AppContainer = request.app.state.container
    record = container.campaign_service.update_campaign(
        campaign_id, user_id, payload.model_dump(exclude_unset=True)
    )
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return _campaign_payload(record)


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, bool]:
    """Delete one of the caller's campaigns."""
    container: AppContainer = request.app.state.container
    if not container.campaign_service.delete_campaign(campaign_id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"success": True}


def _campaign_payload(record: CampaignRecord) -> dict[str, object]:
    payload = asdict(record)
    payload["aspect_ratio"] = record.aspect_ratio.value
    payload["created_at"] = (
        record.created_at.isoformat() if record.created_at else None
    )
    return payload
