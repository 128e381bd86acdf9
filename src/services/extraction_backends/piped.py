"""Piped extraction backend.

Piped exposes the raw stream manifest of a video. Several audio renditions
come back and the best one is chosen by bitrate.
"""

import logging
from typing import Optional

import httpx

from models.beat import VideoRef
from models.resolution import AudioRendition, BackendTier, Resolved
from services.extraction_backends.base import (
    BackendError,
    BackendOutcome,
    ExtractionBackend,
    build_filename,
    select_best_rendition,
)

logger = logging.getLogger(__name__)


class PipedBackend(ExtractionBackend):
    """One Piped API instance."""

    tier = BackendTier.DIRECT
    default_timeout = 8.0

    def __init__(
        self,
        instance_url: str,
        priority: int,
        timeout_seconds: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.instance_url = instance_url.rstrip("/")
        host = httpx.URL(self.instance_url).host or self.instance_url
        super().__init__(f"piped:{host}", priority, timeout_seconds)
        self.client = client or httpx.AsyncClient(timeout=None)

    async def invoke(self, video: VideoRef, title: Optional[str] = None) -> BackendOutcome:
        response = await self.client.get(
            f"{self.instance_url}/streams/{video.video_id}", timeout=self.timeout_seconds
        )
        response.raise_for_status()
        data = response.json()

        if data.get("error"):
            raise BackendError(f"piped error: {data['error']}")

        candidates = self._parse_audio_streams(data.get("audioStreams") or [])
        best = select_best_rendition(candidates)
        if best is None:
            logger.debug(f"[{self.name}] No audio streams for {video.video_id}")
            return None

        extension = "m4a" if best.mime_type and "mp4" in best.mime_type else "webm"
        return Resolved(
            audio_url=best.url,
            suggested_filename=build_filename(title or data.get("title"), video.video_id, extension),
            bitrate_kbps=best.bitrate_kbps,
            backend_name=self.name,
        )

    @staticmethod
    def _parse_audio_streams(streams: list[dict]) -> list[AudioRendition]:
        """Convert Piped audioStreams entries (bitrate in bps) to renditions."""
        renditions = []
        for stream in streams:
            url = stream.get("url")
            if not url:
                continue
            bitrate = stream.get("bitrate")
            renditions.append(
                AudioRendition(
                    url=url,
                    bitrate_kbps=int(bitrate) // 1000 if bitrate else None,
                    mime_type=stream.get("mimeType"),
                )
            )
        return renditions
