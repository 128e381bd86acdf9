"""yt-dlp extraction backend.

Runs yt-dlp from the server's own network egress. It is slower than the
public APIs but does not depend on their availability, so it sits in the
proxy tier with a longer deadline.
"""

import asyncio
import json
import logging
import sys
from typing import Optional

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


class YtDlpBackend(ExtractionBackend):
    """Extract the audio stream URL with a yt-dlp subprocess."""

    tier = BackendTier.PROXY
    default_timeout = 30.0

    def __init__(
        self,
        priority: int,
        timeout_seconds: Optional[float] = None,
        cookies_file: Optional[str] = None,
        executable: Optional[list[str]] = None,
    ):
        """Initialize yt-dlp backend.

        Args:
            priority: Position within the proxy tier
            timeout_seconds: Deadline for the whole extraction
            cookies_file: Optional Netscape cookies file passed to yt-dlp
            executable: Command prefix; defaults to this interpreter's yt_dlp module
        """
        super().__init__("yt-dlp", priority, timeout_seconds)
        self.cookies_file = cookies_file
        self.executable = executable or [sys.executable, "-m", "yt_dlp"]

    def build_command(self, video: VideoRef) -> list[str]:
        cmd = [*self.executable, "-J", "--no-playlist", "--no-warnings", "--skip-download"]
        if self.cookies_file:
            cmd += ["--cookies", self.cookies_file]
        cmd.append(video.source_url)
        return cmd

    async def invoke(self, video: VideoRef, title: Optional[str] = None) -> BackendOutcome:
        cmd = self.build_command(video)
        logger.debug(f"[{self.name}] Running: {' '.join(cmd)}")

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            # Deadline hit: do not leave yt-dlp running in the background
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip().splitlines()
            raise BackendError(message[-1] if message else f"yt-dlp exited with {proc.returncode}")

        info = json.loads(stdout)
        best = select_best_rendition(self._parse_formats(info.get("formats") or []))
        if best is None:
            return None

        return Resolved(
            audio_url=best.url,
            suggested_filename=build_filename(title or info.get("title"), video.video_id, self._extension(best)),
            bitrate_kbps=best.bitrate_kbps,
            backend_name=self.name,
        )

    @staticmethod
    def _parse_formats(formats: list[dict]) -> list[AudioRendition]:
        """Keep audio-only formats (vcodec 'none') as renditions."""
        renditions = []
        for fmt in formats:
            if fmt.get("vcodec") != "none" or fmt.get("acodec") in (None, "none"):
                continue
            if not fmt.get("url"):
                continue
            abr = fmt.get("abr") or fmt.get("tbr")
            renditions.append(
                AudioRendition(
                    url=fmt["url"],
                    bitrate_kbps=int(abr) if abr else None,
                    mime_type=f"audio/{fmt['ext']}" if fmt.get("ext") else None,
                )
            )
        return renditions

    @staticmethod
    def _extension(rendition: AudioRendition) -> str:
        if rendition.mime_type:
            return rendition.mime_type.split("/", 1)[1]
        return "m4a"
