# Data models for beatfinder
from .beat import (
    Beat,
    BeatAggregate,
    ClaimResult,
    Identity,
    Vote,
    VoteChoice,
    VideoRef,
    slugify,
)
from .genre import BPM_RANGES, GENRES, MUSICAL_KEYS, BpmRange, Genre
from .resolution import (
    AttemptLog,
    AttemptOutcome,
    AudioRendition,
    BackendTier,
    Exhausted,
    ManualHandoff,
    Resolved,
    ResolutionResult,
    TimedOut,
)

__all__ = [
    "Beat",
    "BeatAggregate",
    "ClaimResult",
    "Identity",
    "Vote",
    "VoteChoice",
    "VideoRef",
    "slugify",
    # Browse catalog
    "BPM_RANGES",
    "GENRES",
    "MUSICAL_KEYS",
    "BpmRange",
    "Genre",
    # Audio resolution
    "AttemptLog",
    "AttemptOutcome",
    "AudioRendition",
    "BackendTier",
    "Exhausted",
    "ManualHandoff",
    "Resolved",
    "ResolutionResult",
    "TimedOut",
]
