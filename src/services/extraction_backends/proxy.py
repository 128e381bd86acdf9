"""Relay backend that asks another BeatFinder deployment to resolve audio.

The remote end exposes the same POST /api/download contract as this
service, so requests are re-issued from that deployment's network.
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


class ProxyBackend(ExtractionBackend):
    """Server-mediated resolution through a trusted relay."""

    tier = BackendTier.PROXY
    default_timeout = 20.0

    def __init__(
        self,
        proxy_url: str,
        priority: int,
        timeout_seconds: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.proxy_url = proxy_url.rstrip("/")
        super().__init__(f"proxy:{httpx.URL(self.proxy_url).host or self.proxy_url}", priority, timeout_seconds)
        self.client = client or httpx.AsyncClient(timeout=None)

    async def invoke(self, video: VideoRef, title: Optional[str] = None) -> BackendOutcome:
        payload = {"videoId": video.video_id}
        if title:
            payload["title"] = title

        response = await self.client.post(f"{self.proxy_url}/api/download", json=payload, timeout=self.timeout_seconds)
        if response.status_code == 502:
            # Relay ran its own chain and came up empty
            return None
        response.raise_for_status()

        data = response.json()
        if data.get("status") not in ("tunnel", "redirect") or not data.get("url"):
            raise BackendError(data.get("error") or f"unexpected relay status: {data.get('status')}")

        filename = data.get("filename")
        return Resolved(
            audio_url=data["url"],
            suggested_filename=sanitize_filename(filename) if filename else build_filename(title, video.video_id),
            bitrate_kbps=data.get("bitrate_kbps"),
            backend_name=self.name,
        )
