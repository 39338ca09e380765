"""Campaign lookup and owner-facing campaign management."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from vouchflow.domain.campaigns import (
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_PROMPTS,
    DEFAULT_SECONDARY_COLOR,
    DEMO_CAMPAIGN,
    DEMO_CAMPAIGN_ID,
    MAX_PROMPTS,
    AspectRatio,
    CampaignParameters,
    CampaignRecord,
)
from vouchflow.domain.errors import MetadataFetchError, MetadataFetchErrorKind

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "name",
    "company_name",
    "logo_url",
    "brand_color",
    "secondary_color",
    "aspect_ratio",
    "prompts",
}
_REQUIRED_FIELDS = {"name", "brand_color", "secondary_color", "aspect_ratio"}


class CampaignRepository(Protocol):
    """Persistence interface for campaigns."""

    def get_campaign(self, campaign_id: str) -> CampaignRecord | None:
        """Return a campaign by id, if present."""

    def list_campaigns(self, user_id: str) -> list[CampaignRecord]:
        """Return a user's campaigns, newest first, with video counts."""

    def create_campaign(self, payload: dict[str, object]) -> CampaignRecord:
        """Insert a campaign row and return it."""

    def update_campaign(
        self, campaign_id: str, user_id: str, changes: dict[str, object]
    ) -> CampaignRecord | None:
        """Update a campaign owned by the user and return it."""

    def delete_campaign(self, campaign_id: str, user_id: str) -> None:
        """Delete a campaign owned by the user."""


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except ValueError:
        return False
    return True


@dataclass
class CampaignService:
    """Supplies campaign parameters to recording sessions and owners."""

    repository: CampaignRepository

    def fetch_campaign(self, campaign_id: str) -> CampaignParameters:
        """Return session parameters for a campaign id."""
        if campaign_id == DEMO_CAMPAIGN_ID:
            return DEMO_CAMPAIGN
        if not _is_uuid(campaign_id):
            raise MetadataFetchError(
                MetadataFetchErrorKind.NOT_FOUND,
                f"Malformed campaign id {campaign_id!r}",
            )
        try:
            record = self.repository.get_campaign(campaign_id)
        except Exception as exc:
            logger.exception("Failed to fetch campaign %s", campaign_id)
            raise MetadataFetchError(
                MetadataFetchErrorKind.UNAVAILABLE, str(exc)
            ) from exc
        if record is None:
            raise MetadataFetchError(
                MetadataFetchErrorKind.NOT_FOUND, f"Campaign {campaign_id} not found"
            )
        return record.to_parameters()

    def campaign_exists(self, campaign_id: str) -> bool:
        if not _is_uuid(campaign_id):
            return False
        return self.repository.get_campaign(campaign_id) is not None

    def get_owned_campaign(
        self, campaign_id: str, user_id: str
    ) -> CampaignRecord | None:
        """Return a campaign only if the user owns it."""
        if not _is_uuid(campaign_id):
            return None
        record = self.repository.get_campaign(campaign_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def list_campaigns(self, user_id: str) -> list[CampaignRecord]:
        return self.repository.list_campaigns(user_id)

    def create_campaign(  # noqa: PLR0913
        self,
        user_id: str,
        name: str,
        company_name: str | None = None,
        logo_url: str | None = None,
        brand_color: str | None = None,
        secondary_color: str | None = None,
        aspect_ratio: AspectRatio | None = None,
        prompts: list[str] | None = None,
    ) -> CampaignRecord:
        """Create a campaign, filling in branding and prompt defaults."""
        if not name.strip():
            raise ValueError("Campaign name is required")
        record = self.repository.create_campaign(
            {
                "user_id": user_id,
                "name": name.strip(),
                "company_name": company_name or None,
                "logo_url": logo_url or None,
                "brand_color": brand_color or DEFAULT_PRIMARY_COLOR,
                "secondary_color": secondary_color or DEFAULT_SECONDARY_COLOR,
                "aspect_ratio": (aspect_ratio or AspectRatio.PORTRAIT).value,
                "prompts": _clean_prompts(prompts) or list(DEFAULT_PROMPTS),
            }
        )
        logger.info("Created campaign %s for user %s", record.id, user_id)
        return record

    def update_campaign(
        self, campaign_id: str, user_id: str, changes: dict[str, object]
    ) -> CampaignRecord | None:
        """Apply a partial update to a campaign the user owns."""
        if not _is_uuid(campaign_id):
            return None
        payload = {
            key: value
            for key, value in changes.items()
            if key in _UPDATABLE_FIELDS
            and not (value is None and key in _REQUIRED_FIELDS)
        }
        if isinstance(payload.get("aspect_ratio"), AspectRatio):
            payload["aspect_ratio"] = payload["aspect_ratio"].value
        if "prompts" in payload:
            prompts = payload["prompts"]
            payload["prompts"] = (
                _clean_prompts(prompts) if isinstance(prompts, list) else []
            ) or list(DEFAULT_PROMPTS)
        if not payload:
            return self.get_owned_campaign(campaign_id, user_id)
        return self.repository.update_campaign(campaign_id, user_id, payload)

    def delete_campaign(self, campaign_id: str, user_id: str) -> bool:
        """Delete a campaign the user owns. Returns False if it isn't theirs."""
        if self.get_owned_campaign(campaign_id, user_id) is None:
            return False
        self.repository.delete_campaign(campaign_id, user_id)
        logger.info("Deleted campaign %s", campaign_id)
        return True


def _clean_prompts(prompts: list[str] | None) -> list[str]:
    if not prompts:
        return []
    cleaned = [str(prompt).strip() for prompt in prompts if str(prompt).strip()]
    return cleaned[:MAX_PROMPTS]
