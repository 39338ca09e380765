"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from vouchflow.domain.branding import hex_to_rgb

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    cloudinary_cloud_name: str
    cloudinary_upload_preset: str = "vouchflow_videos"
    cloudinary_folder: str = "vouchflow"
    upload_chunk_size_bytes: int = 6_000_000
    max_recording_seconds: int = 60
    camera_device: str = "/dev/video0"
    audio_device: str | None = "default"
    ffmpeg_binary: str = "ffmpeg"
    recordings_dir: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_hex_color(raw: str | None) -> str | None:
    """Normalize a brand color to ``#rrggbb``, or None if it isn't one."""
    if raw is None:
        return None
    rgb = hex_to_rgb(raw)
    if rgb is None:
        return None
    return "#" + "".join(f"{value:02x}" for value in rgb).upper()
