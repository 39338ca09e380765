"""Domain models for campaigns and submitted videos."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

DEMO_CAMPAIGN_ID = "demo"
MAX_PROMPTS = 5
DEFAULT_PRIMARY_COLOR = "#4F46E5"
DEFAULT_SECONDARY_COLOR = "#1E293B"
DEFAULT_PROMPTS: tuple[str, ...] = (
    "What was your biggest challenge before working with us?",
    "How did we help you overcome it?",
    "What results have you seen since?",
)


class AspectRatio(str, Enum):
    """Target framing for a campaign's recordings."""

    PORTRAIT = "portrait"
    SQUARE = "square"
    LANDSCAPE = "landscape"


@dataclass(frozen=True)
class CaptureConstraints:
    """Ideal capture settings requested from the device."""

    width: int
    height: int
    facing_mode: str = "user"
    audio: bool = True


_RESOLUTIONS: dict[AspectRatio, tuple[int, int]] = {
    AspectRatio.PORTRAIT: (720, 1280),
    AspectRatio.SQUARE: (1080, 1080),
    AspectRatio.LANDSCAPE: (1280, 720),
}


def capture_constraints(aspect_ratio: AspectRatio) -> CaptureConstraints:
    """Return the ideal capture resolution for an aspect ratio."""
    width, height = _RESOLUTIONS[aspect_ratio]
    return CaptureConstraints(width=width, height=height)


def normalize_prompts(prompts: list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Drop blank prompts, cap at five, and fall back to the defaults."""
    cleaned = tuple(p.strip() for p in prompts or () if p and p.strip())
    return cleaned[:MAX_PROMPTS] or DEFAULT_PROMPTS


@dataclass(frozen=True)
class CampaignParameters:
    """Read-only campaign input to a recording session."""

    campaign_id: str
    prompts: tuple[str, ...]
    primary_color: str = DEFAULT_PRIMARY_COLOR
    secondary_color: str = DEFAULT_SECONDARY_COLOR
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    name: str | None = None
    company_name: str | None = None
    logo_url: str | None = None

    @property
    def is_demo(self) -> bool:
        return self.campaign_id == DEMO_CAMPAIGN_ID

    @property
    def constraints(self) -> CaptureConstraints:
        return capture_constraints(self.aspect_ratio)


DEMO_CAMPAIGN = CampaignParameters(
    campaign_id=DEMO_CAMPAIGN_ID,
    prompts=DEFAULT_PROMPTS,
    name="Demo",
    company_name="VouchFlow",
)


@dataclass(frozen=True)
class CampaignRecord:
    """Represents a campaign row owned by a business user."""

    id: str
    user_id: str
    name: str
    company_name: str | None
    logo_url: str | None
    brand_color: str
    secondary_color: str
    aspect_ratio: AspectRatio
    prompts: list[str]
    created_at: datetime | None = None
    video_count: int = 0

    def to_parameters(self) -> CampaignParameters:
        """Project the stored row onto recording session input."""
        return CampaignParameters(
            campaign_id=self.id,
            prompts=normalize_prompts(self.prompts),
            primary_color=self.brand_color,
            secondary_color=self.secondary_color,
            aspect_ratio=self.aspect_ratio,
            name=self.name,
            company_name=self.company_name,
            logo_url=self.logo_url,
        )


@dataclass(frozen=True)
class VideoRecord:
    """Represents a submitted testimonial video."""

    id: str
    campaign_id: str
    video_url: str
    public_id: str | None
    thumbnail_url: str | None
    submitter_name: str | None
    submitter_email: str | None
    duration: float | None
    status: str
    created_at: datetime | None = None
