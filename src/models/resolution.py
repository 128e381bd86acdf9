"""Data models for audio resolution results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class BackendTier(str, Enum):
    """Priority class of extraction backends, tried in declaration order."""

    DIRECT = "direct"
    PROXY = "proxy"
    MANUAL = "manual-fallback"

    @property
    def rank(self) -> int:
        return list(BackendTier).index(self)


class AttemptOutcome(str, Enum):
    """Why a backend did not produce an audio URL."""

    NO_RESULT = "no-result"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass
class AttemptLog:
    """Diagnostic record of one failed backend attempt."""

    backend_name: str
    outcome: AttemptOutcome
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "backend": self.backend_name,
            "outcome": self.outcome.value,
            "detail": self.detail,
        }


@dataclass
class AudioRendition:
    """One candidate audio stream offered by a search-style backend."""

    url: str
    bitrate_kbps: Optional[int] = None
    mime_type: Optional[str] = None


@dataclass
class ManualHandoff:
    """Instructions for a human-operated download tool.

    Produced by the manual fallback tier. It never carries a direct audio
    URL; the UI shows the tool link and the source URL to paste into it.
    """

    tool_url: str
    source_url: str
    message: str = "Open the download tool and paste the video link."

    def to_dict(self) -> dict:
        return {"tool_url": self.tool_url, "source_url": self.source_url, "message": self.message}


@dataclass
class Resolved:
    """A playable/downloadable audio URL."""

    audio_url: str
    suggested_filename: str
    bitrate_kbps: Optional[int] = None
    backend_name: Optional[str] = None


@dataclass
class Exhausted:
    """Every backend was tried and none produced an audio URL."""

    attempts: list[AttemptLog] = field(default_factory=list)
    hint: Optional[ManualHandoff] = None


@dataclass
class TimedOut:
    """No backend produced an audio URL and at least one ran out of time."""

    attempts: list[AttemptLog] = field(default_factory=list)
    hint: Optional[ManualHandoff] = None


ResolutionResult = Union[Resolved, Exhausted, TimedOut]
