"""Supabase-backed video repository."""

from dataclasses import dataclass

from supabase import Client

from vouchflow.adapters.supabase_campaign_repository import parse_timestamp
from vouchflow.domain.campaigns import VideoRecord
from vouchflow.services.videos import VideoRepository


@dataclass
class SupabaseVideoRepository(VideoRepository):
    """Supabase implementation for submitted videos."""

    client: Client

    def insert_video(self, payload: dict[str, object]) -> VideoRecord:
        """Insert a new video row."""
        response = self.client.table("videos").insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to save video")
        return _to_video(response.data[0])

    def upsert_video(self, payload: dict[str, object]) -> VideoRecord:
        """Insert a video row, merging on the storage public id."""
        if not payload.get("public_id"):
            raise ValueError("Upserting a video requires a public_id")
        response = (
            self.client.table("videos")
            .upsert(payload, on_conflict="public_id")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save video")
        return _to_video(response.data[0])

    def get_video(self, video_id: str) -> VideoRecord | None:
        """Return a video by id, if present."""
        return self._first("id", video_id)

    def get_video_by_public_id(self, public_id: str) -> VideoRecord | None:
        """Return the video stored under a storage public id, if present."""
        return self._first("public_id", public_id)

    def list_videos(self, campaign_id: str) -> list[VideoRecord]:
        """Return a campaign's videos, newest first."""
        response = (
            self.client.table("videos")
            .select("*")
            .eq("campaign_id", campaign_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [_to_video(row) for row in response.data or []]

    def delete_video(self, video_id: str) -> None:
        """Delete a video row."""
        self.client.table("videos").delete().eq("id", video_id).execute()

    def _first(self, column: str, value: str) -> VideoRecord | None:
        response = (
            self.client.table("videos")
            .select("*")
            .eq(column, value)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_video(response.data[0])


def _to_video(row: dict[str, object]) -> VideoRecord:
    duration = row.get("duration")
    return VideoRecord(
        id=str(row["id"]),
        campaign_id=str(row["campaign_id"]),
        video_url=str(row["video_url"]),
        public_id=row.get("public_id"),
        thumbnail_url=row.get("thumbnail_url"),
        submitter_name=row.get("submitter_name"),
        submitter_email=row.get("submitter_email"),
        duration=float(duration) if isinstance(duration, int | float) else None,
        status=str(row.get("status") or "ready"),
        created_at=parse_timestamp(row.get("created_at")),
    )
