"""Cobalt extraction backend.

Cobalt instances accept a media URL and answer with a tunnel or redirect URL
for the requested audio format.
"""

import logging
from typing import Optional

import httpx

from models.beat import VideoRef
from models.resolution import BackendTier, Resolved
from services.extraction_backends.base import (
    BackendError,
    BackendOutcome,
    ExtractionBackend,
    build_filename,
    sanitize_filename,
)

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = ("tunnel", "redirect")


class CobaltBackend(ExtractionBackend):
    """One public or self-hosted Cobalt instance."""

    tier = BackendTier.DIRECT
    default_timeout = 8.0

    def __init__(
        self,
        instance_url: str,
        priority: int,
        timeout_seconds: Optional[float] = None,
        audio_bitrate: str = "320",
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Cobalt backend.

        Args:
            instance_url: Base URL of the instance (e.g. https://api.cobalt.tools)
            priority: Position within the direct tier
            timeout_seconds: Per-request deadline
            audio_bitrate: Requested MP3 bitrate in kbps
            client: Shared HTTP client; a private one is created if omitted
        """
        self.instance_url = instance_url.rstrip("/")
        host = httpx.URL(self.instance_url).host or self.instance_url
        super().__init__(f"cobalt:{host}", priority, timeout_seconds)
        self.audio_bitrate = audio_bitrate
        self.client = client or httpx.AsyncClient(timeout=None)

    async def invoke(self, video: VideoRef, title: Optional[str] = None) -> BackendOutcome:
        payload = {
            "url": video.source_url,
            "downloadMode": "audio",
            "audioFormat": "mp3",
            "audioBitrate": self.audio_bitrate,
        }
        headers = {"Accept": "application/json", "Content-Type": "application/json"}

        logger.debug(f"[{self.name}] Requesting audio for {video.video_id}")
        response = await self.client.post(
            f"{self.instance_url}/", json=payload, headers=headers, timeout=self.timeout_seconds
        )

        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise BackendError(f"non-JSON response (HTTP {response.status_code})")

        status = data.get("status")
        if status in SUCCESS_STATUSES and data.get("url"):
            filename = data.get("filename")
            return Resolved(
                audio_url=data["url"],
                suggested_filename=(
                    sanitize_filename(filename) if filename else build_filename(title, video.video_id)
                ),
                backend_name=self.name,
            )

        if status == "error":
            error = data.get("error")
            code = error.get("code") if isinstance(error, dict) else error
            raise BackendError(f"cobalt error: {code or 'unknown'}")

        if response.status_code >= 400:
            raise BackendError(f"HTTP {response.status_code}")

        # picker / local-processing responses carry no single audio URL
        logger.debug(f"[{self.name}] Unusable status '{status}' for {video.video_id}")
        return None
