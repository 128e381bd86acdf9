"""Beat, vote and identity data models."""

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


class VoteChoice(str, Enum):
    """A swipe outcome that counts toward the rankings."""

    LIKE = "like"
    DISLIKE = "dislike"


class ClaimResult(str, Enum):
    """Outcome of claiming a username slug."""

    CREATED = "created"
    RETURNING = "returning"
    TAKEN = "taken"

    @property
    def accepted(self) -> bool:
        return self is not ClaimResult.TAKEN


@dataclass(frozen=True)
class VideoRef:
    """Opaque reference to a source video."""

    video_id: str

    @property
    def source_url(self) -> str:
        """Canonical watch URL handed to extraction services."""
        return YOUTUBE_WATCH_URL.format(video_id=self.video_id)


@dataclass
class Beat:
    """A beat as shown on a swipe card.

    Built from a search result; BPM and type-beat artist are parsed from the
    title and may be missing.
    """

    video_id: str
    title: str
    thumbnail: str
    channel_title: str
    bpm: Optional[int] = None
    type_beat: Optional[str] = None
    saved_at: Optional[str] = None  # ISO timestamp, set when favorited

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Beat":
        return cls(
            video_id=data["video_id"],
            title=data.get("title", ""),
            thumbnail=data.get("thumbnail", ""),
            channel_title=data.get("channel_title", ""),
            bpm=data.get("bpm"),
            type_beat=data.get("type_beat"),
            saved_at=data.get("saved_at"),
        )


@dataclass
class Vote:
    """The current vote of one user on one beat."""

    voter_id: str
    video_id: str
    choice: VoteChoice
    cast_at: Optional[str] = None


@dataclass
class BeatAggregate:
    """Per-beat vote counters shown on the rankings view."""

    video_id: str
    title: str = ""
    thumbnail: str = ""
    channel_title: str = ""
    bpm: Optional[int] = None
    type_beat: Optional[str] = None
    likes: int = 0
    dislikes: int = 0
    net_votes: int = 0
    first_seen_at: Optional[str] = None
    last_vote_at: Optional[str] = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "BeatAggregate":
        """Build an aggregate from a stored beat document."""
        return cls(
            video_id=data["video_id"],
            title=data.get("title", ""),
            thumbnail=data.get("thumbnail", ""),
            channel_title=data.get("channel_title", ""),
            bpm=data.get("bpm"),
            type_beat=data.get("type_beat"),
            likes=data.get("likes", 0),
            dislikes=data.get("dislikes", 0),
            net_votes=data.get("net_votes", 0),
            first_seen_at=data.get("first_seen_at"),
            last_vote_at=data.get("last_vote_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def slugify(name: str) -> str:
    """Normalize a display name into a key-safe slug.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single hyphen and trims hyphens from both ends.

    Args:
        name: Display name as typed by the user

    Returns:
        Slug string (may be empty if the name has no ASCII alphanumerics)
    """
    slug = _SLUG_SEPARATORS.sub("-", name.lower().strip())
    return slug.strip("-")


@dataclass(frozen=True)
class Identity:
    """A claimed username."""

    display_name: str
    slug: str = field(default="")

    def __post_init__(self):
        if not self.slug:
            object.__setattr__(self, "slug", slugify(self.display_name))

    @classmethod
    def from_display_name(cls, display_name: str) -> "Identity":
        display_name = display_name.strip()
        return cls(display_name=display_name, slug=slugify(display_name))


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()
