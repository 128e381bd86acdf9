"""Base abstraction for audio extraction backends."""

import re
from abc import ABC, abstractmethod
from typing import Optional, Union

from models.resolution import AudioRendition, BackendTier, ManualHandoff, Resolved
from models.beat import VideoRef

ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')

BackendOutcome = Union[Resolved, ManualHandoff, None]


class BackendError(Exception):
    """A backend answered, but explicitly reported a failure."""

    pass


def sanitize_filename(name: str) -> str:
    """Replace characters that are illegal in common filesystems with '_'.

    Total and idempotent: the replacement character is itself legal.
    """
    return ILLEGAL_FILENAME_CHARS.sub("_", name)


def build_filename(title: Optional[str], video_id: str, extension: str = "mp3") -> str:
    """Build a safe '<title>.<ext>' filename, falling back to the video id."""
    base = sanitize_filename(title or "").strip() or sanitize_filename(video_id)
    if base.lower().endswith(f".{extension}"):
        return base
    return f"{base}.{extension}"


def select_best_rendition(candidates: list[AudioRendition]) -> Optional[AudioRendition]:
    """Pick the highest-bitrate rendition.

    Uses a stable sort so equal bitrates keep their original order, which
    makes the choice repeatable for the same backend response.
    """
    usable = [c for c in candidates if c.url]
    if not usable:
        return None
    ranked = sorted(usable, key=lambda c: c.bitrate_kbps or 0, reverse=True)
    return ranked[0]


class ExtractionBackend(ABC):
    """Abstract base class for services that turn a video into an audio URL.

    Subclasses only differ in how they talk to their service; ordering,
    timeouts and failure bookkeeping live in the Resolver.
    """

    tier: BackendTier = BackendTier.DIRECT
    default_timeout: float = 8.0

    def __init__(self, name: str, priority: int, timeout_seconds: Optional[float] = None):
        """Initialize backend descriptor fields.

        Args:
            name: Unique name used in attempt logs
            priority: Lower numbers are tried first within a tier
            timeout_seconds: Deadline for one invoke call
        """
        self.name = name
        self.priority = priority
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else self.default_timeout

    @abstractmethod
    async def invoke(self, video: VideoRef, title: Optional[str] = None) -> BackendOutcome:
        """Try to resolve the video to an audio URL.

        Args:
            video: Video to resolve
            title: Optional display title used for the suggested filename

        Returns:
            Resolved on success, ManualHandoff for human-operated tools,
            or None when the service had nothing usable

        Raises:
            BackendError: If the service reported an explicit failure
        """

    def is_configured(self) -> bool:
        """Check if this backend has what it needs to run.

        Default implementation returns True.
        """
        return True

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, tier={self.tier.value}, "
            f"priority={self.priority}, timeout={self.timeout_seconds}s)"
        )
