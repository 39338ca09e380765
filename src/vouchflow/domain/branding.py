"""Color helpers for campaign branding."""

import re
from dataclasses import dataclass

_HEX_PATTERN = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)
_LIGHT_THRESHOLD = 0.179


def hex_to_rgb(hex_color: str) -> tuple[int, int, int] | None:
    """Parse a #rrggbb color into an RGB tuple."""
    match = _HEX_PATTERN.match(hex_color.strip())
    if match is None:
        return None
    red, green, blue = (int(part, 16) for part in match.groups())
    return red, green, blue


def luminance(hex_color: str) -> float:
    """Return the WCAG 2.0 relative luminance of a color."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return 0.0

    def _channel(value: int) -> float:
        scaled = value / 255
        if scaled <= 0.03928:
            return scaled / 12.92
        return ((scaled + 0.055) / 1.055) ** 2.4

    red, green, blue = (_channel(value) for value in rgb)
    return 0.2126 * red + 0.7152 * green + 0.0722 * blue


def is_light_color(hex_color: str) -> bool:
    return luminance(hex_color) > _LIGHT_THRESHOLD


def contrast_text_color(background: str) -> str:
    """Pick black or white text for a background color."""
    return "black" if is_light_color(background) else "white"


def _to_hex(red: float, green: float, blue: float) -> str:
    return "#" + "".join(f"{round(value):02x}" for value in (red, green, blue))


def darken_color(hex_color: str, percent: float = 10) -> str:
    """Return a darker shade, e.g. for hover states."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return hex_color
    factor = 1 - percent / 100
    return _to_hex(*(value * factor for value in rgb))


def lighten_color(hex_color: str, percent: float = 10) -> str:
    """Return a lighter tint of a color."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return hex_color
    factor = percent / 100
    return _to_hex(*(value + (255 - value) * factor for value in rgb))


def hex_with_alpha(hex_color: str, alpha: float) -> str:
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return hex_color
    red, green, blue = rgb
    return f"rgba({red}, {green}, {blue}, {alpha})"


def format_duration(seconds: int) -> str:
    """Format a second count as m:ss for the recording timer."""
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"


@dataclass(frozen=True)
class BrandTheme:
    """Derived colors used to render a campaign's recording page."""

    primary: str
    secondary: str
    primary_text: str
    secondary_text: str
    primary_hover: str
    primary_soft: str


def build_theme(primary: str, secondary: str) -> BrandTheme:
    """Derive text and accent colors from a campaign's brand colors."""
    return BrandTheme(
        primary=primary,
        secondary=secondary,
        primary_text=contrast_text_color(primary),
        secondary_text=contrast_text_color(secondary),
        primary_hover=darken_color(primary),
        primary_soft=hex_with_alpha(primary, 0.2),
    )
