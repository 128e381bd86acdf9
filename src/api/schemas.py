"""Pydantic request/response models for the BeatFinder API."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

from models.beat import Beat, BeatAggregate

# =============================================================================
# Shared
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str

    model_config = {"json_schema_extra": {"examples": [{"status": "healthy"}]}}


class BeatSchema(BaseModel):
    """A beat as sent by and to the client."""

    video_id: str = Field(validation_alias=AliasChoices("video_id", "videoId"), min_length=1)
    title: str = ""
    thumbnail: str = ""
    channel_title: str = Field(default="", validation_alias=AliasChoices("channel_title", "channelTitle"))
    bpm: int | None = None
    type_beat: str | None = Field(default=None, validation_alias=AliasChoices("type_beat", "typeBeat"))
    saved_at: str | None = Field(default=None, validation_alias=AliasChoices("saved_at", "savedAt"))

    def to_model(self) -> Beat:
        return Beat(
            video_id=self.video_id,
            title=self.title,
            thumbnail=self.thumbnail,
            channel_title=self.channel_title,
            bpm=self.bpm,
            type_beat=self.type_beat,
            saved_at=self.saved_at,
        )

    @classmethod
    def from_model(cls, beat: Beat) -> "BeatSchema":
        return cls(
            video_id=beat.video_id,
            title=beat.title,
            thumbnail=beat.thumbnail,
            channel_title=beat.channel_title,
            bpm=beat.bpm,
            type_beat=beat.type_beat,
            saved_at=beat.saved_at,
        )


# =============================================================================
# Download
# =============================================================================


class DownloadRequest(BaseModel):
    """Request to resolve a beat to an MP3 URL."""

    video_id: str = Field(validation_alias=AliasChoices("video_id", "videoId"), min_length=1)
    title: str | None = None


class DownloadResponse(BaseModel):
    """Resolved audio URL."""

    status: Literal["tunnel"] = "tunnel"
    url: str
    filename: str
    bitrate_kbps: int | None = None
    backend: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "tunnel",
                    "url": "https://api.cobalt.tools/tunnel?id=abc",
                    "filename": "Dark Trap Beat.mp3",
                    "bitrate_kbps": None,
                    "backend": "cobalt:api.cobalt.tools",
                }
            ]
        }
    }


class AttemptSchema(BaseModel):
    backend: str
    outcome: Literal["no-result", "error", "timeout"]
    detail: str | None = None


class ManualHandoffSchema(BaseModel):
    tool_url: str
    source_url: str
    message: str


class DownloadFailedResponse(BaseModel):
    """No backend produced an audio URL."""

    error: str
    status: Literal["exhausted", "timeout"]
    attempts: list[AttemptSchema]
    hint: ManualHandoffSchema | None = None


# =============================================================================
# Votes, rankings, users
# =============================================================================


class VoteRequest(BaseModel):
    """A swipe that counts toward the rankings."""

    beat: BeatSchema
    choice: Literal["like", "dislike"]
    username: str = Field(min_length=1)


class VoteResponse(BaseModel):
    video_id: str
    username: str  # slug
    choice: Literal["like", "dislike"]
    voted_at: str | None = None


class RankedBeatResponse(BaseModel):
    """One row of the rankings view."""

    video_id: str
    title: str
    thumbnail: str
    channel_title: str
    bpm: int | None = None
    type_beat: str | None = None
    likes: int
    dislikes: int
    net_votes: int

    @classmethod
    def from_aggregate(cls, aggregate: BeatAggregate) -> "RankedBeatResponse":
        return cls(
            video_id=aggregate.video_id,
            title=aggregate.title,
            thumbnail=aggregate.thumbnail,
            channel_title=aggregate.channel_title,
            bpm=aggregate.bpm,
            type_beat=aggregate.type_beat,
            likes=aggregate.likes,
            dislikes=aggregate.dislikes,
            net_votes=aggregate.net_votes,
        )


class UserClaimRequest(BaseModel):
    username: str = Field(min_length=1, max_length=40)


class UserClaimResponse(BaseModel):
    username: str
    slug: str
    status: Literal["created", "returning"]


# =============================================================================
# Search
# =============================================================================


class SearchResponse(BaseModel):
    beats: list[BeatSchema]
    next_page_token: str | None = None
    channels: list[str] = []  # channel filter options for this page


class GenreResponse(BaseModel):
    id: str
    label: str
    emoji: str
    search_term: str


class BpmRangeSchema(BaseModel):
    label: str
    min: int
    max: int


class FiltersResponse(BaseModel):
    keys: list[str]
    bpm_ranges: list[BpmRangeSchema]
