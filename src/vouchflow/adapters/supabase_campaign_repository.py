"""Supabase-backed campaign repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from vouchflow.domain.campaigns import (
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    AspectRatio,
    CampaignRecord,
)
from vouchflow.services.campaigns import CampaignRepository

_COLUMNS = (
    "id, user_id, name, company_name, logo_url, brand_color, secondary_color, "
    "aspect_ratio, prompts, created_at"
)


@dataclass
class SupabaseCampaignRepository(CampaignRepository):
    """Supabase implementation for campaign persistence."""

    client: Client

    def get_campaign(self, campaign_id: str) -> CampaignRecord | None:
        """Return a campaign by id, if present."""
        response = (
            self.client.table("campaigns")
            .select(_COLUMNS)
            .eq("id", campaign_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_campaign(response.data[0])

    def list_campaigns(self, user_id: str) -> list[CampaignRecord]:
        """Return a user's campaigns with their video counts."""
        response = (
            self.client.table("campaigns")
            .select(f"{_COLUMNS}, videos(count)")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [_to_campaign(row) for row in response.data or []]

    def create_campaign(self, payload: dict[str, object]) -> CampaignRecord:
        """Insert a campaign row and return it."""
        response = self.client.table("campaigns").insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create campaign")
        return _to_campaign(response.data[0])

    def update_campaign(
        self, campaign_id: str, user_id: str, changes: dict[str, object]
    ) -> CampaignRecord | None:
        """Update a campaign row owned by the user."""
        response = (
            self.client.table("campaigns")
            .update(changes)
            .eq("id", campaign_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not response.data:
            return None
        return _to_campaign(response.data[0])

    def delete_campaign(self, campaign_id: str, user_id: str) -> None:
        """Delete a campaign row owned by the user."""
        self.client.table("campaigns").delete().eq("id", campaign_id).eq(
            "user_id", user_id
        ).execute()


def _to_campaign(row: dict[str, object]) -> CampaignRecord:
    prompts = row.get("prompts") or []
    return CampaignRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        name=str(row["name"]),
        company_name=row.get("company_name"),
        logo_url=row.get("logo_url"),
        brand_color=str(row.get("brand_color") or DEFAULT_PRIMARY_COLOR),
        secondary_color=str(row.get("secondary_color") or DEFAULT_SECONDARY_COLOR),
        aspect_ratio=AspectRatio(row.get("aspect_ratio") or AspectRatio.PORTRAIT),
        prompts=[str(p) for p in prompts] if isinstance(prompts, list) else [],
        created_at=parse_timestamp(row.get("created_at")),
        video_count=_video_count(row.get("videos")),
    )


def _video_count(videos: object) -> int:
    if isinstance(videos, list) and videos and isinstance(videos[0], dict):
        return int(videos[0].get("count", 0))
    return 0


def parse_timestamp(value: object) -> datetime | None:
    """Parse a Postgres timestamp string returned by PostgREST."""
    if not isinstance(value, str) or not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
