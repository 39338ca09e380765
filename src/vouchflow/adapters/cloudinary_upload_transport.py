"""Cloudinary video upload transport."""

import logging
from dataclasses import dataclass

import httpx

from vouchflow.domain.errors import UploadError, UploadErrorKind
from vouchflow.domain.recording import Artifact, RemoteReference, UploadProgress
from vouchflow.services.recording import ProgressCallback, UploadTransport

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.cloudinary.com/v1_1"
DELIVERY_BASE_URL = "https://res.cloudinary.com"
DEFAULT_CHUNK_SIZE = 6_000_000

_EXTENSIONS = {"video/webm": "webm", "video/mp4": "mp4", "video/quicktime": "mov"}


def thumbnail_url(cloud_name: str, public_id: str) -> str:
    """Return the first-frame 640x360 thumbnail URL for a video."""
    if not cloud_name:
        return ""
    return (
        f"{DELIVERY_BASE_URL}/{cloud_name}/video/upload/"
        f"so_0,w_640,h_360,c_fill/{public_id}.jpg"
    )


def optimized_video_url(cloud_name: str, public_id: str) -> str:
    """Return an auto-quality, auto-format delivery URL for a video."""
    if not cloud_name:
        return ""
    return f"{DELIVERY_BASE_URL}/{cloud_name}/video/upload/q_auto,f_auto/{public_id}"


@dataclass
class CloudinaryUploadTransport(UploadTransport):
    """Chunked unsigned uploads to Cloudinary using httpx."""

    cloud_name: str
    upload_preset: str
    folder: str
    http_client: httpx.AsyncClient
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @classmethod
    def create(
        cls,
        cloud_name: str,
        upload_preset: str,
        folder: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> "CloudinaryUploadTransport":
        """Create a transport with a managed httpx session."""
        return cls(
            cloud_name=cloud_name,
            upload_preset=upload_preset,
            folder=folder,
            http_client=httpx.AsyncClient(),
            chunk_size=chunk_size,
        )

    async def upload(
        self, artifact: Artifact, on_progress: ProgressCallback
    ) -> RemoteReference:
        """Upload the artifact in chunks, reporting progress after each one.

        The artifact's local id is sent as both the public id and the
        ``X-Unique-Upload-Id``, so a retried upload addresses the same asset.
        """
        if not self.cloud_name:
            raise UploadError(
                UploadErrorKind.SERVER, "Cloudinary cloud name not configured"
            )
        total = artifact.byte_length
        if total == 0:
            raise UploadError(UploadErrorKind.SERVER, "Recording is empty")

        url = f"{API_BASE_URL}/{self.cloud_name}/video/upload"
        extension = _EXTENSIONS.get(artifact.content_type, "bin")
        filename = f"{artifact.local_id}.{extension}"
        form = {
            "upload_preset": self.upload_preset,
            "folder": self.folder,
            "public_id": str(artifact.local_id),
        }
        payload: dict[str, object] = {}
        for start in range(0, total, self.chunk_size):
            end = min(start + self.chunk_size, total)
            headers = {
                "X-Unique-Upload-Id": str(artifact.local_id),
                "Content-Range": f"bytes {start}-{end - 1}/{total}",
            }
            chunk = artifact.data[start:end]
            files = {"file": (filename, chunk, artifact.content_type)}
            try:
                response = await self.http_client.post(
                    url, data=form, files=files, headers=headers, timeout=60
                )
            except httpx.HTTPError as exc:
                raise UploadError(
                    UploadErrorKind.NETWORK, f"Network error during upload: {exc}"
                ) from exc
            if not response.is_success:
                raise UploadError(
                    UploadErrorKind.SERVER,
                    f"Upload failed with status {response.status_code}",
                    status=response.status_code,
                )
            on_progress(UploadProgress(bytes_sent=end, bytes_total=total))
            payload = _parse_json(response)

        reference = _to_reference(payload)
        logger.info("Uploaded %s (%s bytes)", reference.public_id, total)
        return reference

    def thumbnail_url(self, reference: RemoteReference) -> str:
        """Derive the thumbnail URL for an uploaded video."""
        return thumbnail_url(self.cloud_name, reference.public_id)

    def optimized_video_url(self, reference: RemoteReference) -> str:
        return optimized_video_url(self.cloud_name, reference.public_id)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _parse_json(response: httpx.Response) -> dict[str, object]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise UploadError(
            UploadErrorKind.SERVER, "Failed to parse upload response"
        ) from exc
    if not isinstance(payload, dict):
        raise UploadError(UploadErrorKind.SERVER, "Failed to parse upload response")
    return payload


def _to_reference(payload: dict[str, object]) -> RemoteReference:
    secure_url = payload.get("secure_url")
    public_id = payload.get("public_id")
    if not isinstance(secure_url, str) or not isinstance(public_id, str):
        raise UploadError(UploadErrorKind.SERVER, "Upload response missing asset URL")
    duration = payload.get("duration")
    width = payload.get("width")
    height = payload.get("height")
    return RemoteReference(
        public_id=public_id,
        secure_url=secure_url,
        duration=float(duration) if isinstance(duration, int | float) else None,
        width=width if isinstance(width, int) else None,
        height=height if isinstance(height, int) else None,
        format=str(payload["format"]) if payload.get("format") else None,
    )
