"""Pydantic models for API request payloads."""

from pydantic import BaseModel, Field, field_validator

from vouchflow.config import parse_hex_color
from vouchflow.domain.campaigns import MAX_PROMPTS, AspectRatio


def _validate_color(value: str | None) -> str | None:
    if value is None:
        return None
    color = parse_hex_color(value)
    if color is None:
        raise ValueError("Expected a #rrggbb color")
    return color


class CampaignCreate(BaseModel):
    """Payload for creating a campaign."""

    name: str = Field(min_length=1)
    company_name: str | None = None
    logo_url: str | None = None
    brand_color: str | None = None
    secondary_color: str | None = None
    aspect_ratio: AspectRatio | None = None
    prompts: list[str] | None = Field(default=None, max_length=MAX_PROMPTS)

    @field_validator("brand_color", "secondary_color")
    @classmethod
    def check_color(cls, value: str | None) -> str | None:
        return _validate_color(value)


class CampaignUpdate(BaseModel):
    """Partial update for a campaign; omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1)
    company_name: str | None = None
    logo_url: str | None = None
    brand_color: str | None = None
    secondary_color: str | None = None
    aspect_ratio: AspectRatio | None = None
    prompts: list[str] | None = Field(default=None, max_length=MAX_PROMPTS)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("Campaign name cannot be null")
        return value

    @field_validator("brand_color", "secondary_color")
    @classmethod
    def check_color(cls, value: str | None) -> str | None:
        return _validate_color(value)


class VideoCreate(BaseModel):
    """Payload for recording a submitted video."""

    campaign_id: str = Field(min_length=1)
    video_url: str = Field(min_length=1)
    public_id: str | None = None
    thumbnail_url: str | None = None
    submitter_name: str | None = None
    submitter_email: str | None = None
    duration: float | None = Field(default=None, ge=0)
