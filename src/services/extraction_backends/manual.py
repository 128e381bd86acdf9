"""Manual fallback: point the user at a human-operated download tool."""

import logging
from typing import Callable, Optional

from models.beat import VideoRef
from models.resolution import BackendTier, ManualHandoff
from services.extraction_backends.base import BackendOutcome, ExtractionBackend

logger = logging.getLogger(__name__)

DEFAULT_TOOL_URL = "https://yt-mp3s.me/button/mp3/{video_id}"

HandoffCallback = Callable[[ManualHandoff], None]


class ManualFallbackBackend(ExtractionBackend):
    """Last tier. Cannot produce an audio URL and never fails.

    An optional handoff callback performs the client-side part (copy the
    source URL, open the tool). Its failures are logged and swallowed so
    the hint always reaches the caller.
    """

    tier = BackendTier.MANUAL
    default_timeout = 5.0

    def __init__(
        self,
        priority: int = 0,
        tool_url: str = DEFAULT_TOOL_URL,
        handoff: Optional[HandoffCallback] = None,
    ):
        super().__init__("manual", priority)
        self.tool_url = tool_url
        self.handoff = handoff

    def build_handoff(self, video: VideoRef) -> ManualHandoff:
        return ManualHandoff(
            tool_url=self.tool_url.format(video_id=video.video_id),
            source_url=video.source_url,
        )

    async def invoke(self, video: VideoRef, title: Optional[str] = None) -> BackendOutcome:
        handoff = self.build_handoff(video)
        if self.handoff is not None:
            try:
                self.handoff(handoff)
            except Exception as e:
                logger.warning(f"[{self.name}] Handoff callback failed: {e}")
        return handoff
