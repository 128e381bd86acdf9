"""Genre catalog and browse filters."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Genre:
    """A genre tile on the start screen."""

    id: str
    label: str
    emoji: str
    search_term: str


@dataclass(frozen=True)
class BpmRange:
    """Inclusive BPM bounds used to filter swipe candidates."""

    label: str
    min: int
    max: int

    def contains(self, bpm: int) -> bool:
        return self.min <= bpm <= self.max


GENRES: list[Genre] = [
    Genre("trap", "Trap", "🔥", "trap"),
    Genre("boombap", "Boom Bap", "🎤", "boom bap"),
    Genre("lofi", "Lo-Fi", "🌙", "lofi chill"),
    Genre("drill", "Drill", "🔫", "drill"),
    Genre("rnb", "R&B", "💜", "rnb soul"),
    Genre("freestyle", "Freestyle", "🎯", "freestyle"),
    Genre("oldschool", "Old School", "📻", "old school hip hop"),
    Genre("latin", "Latin", "🌴", "latin trap reggaeton"),
]

ALL_KEYS = "All Keys"
ALL_BPM = "All BPM"
ALL_TYPES = "All Types"
ALL_CHANNELS = "All Channels"

MUSICAL_KEYS: list[str] = [
    ALL_KEYS,
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B",
    "Cm", "C#m", "Dm", "D#m", "Em", "Fm", "F#m", "Gm", "G#m", "Am", "A#m", "Bm",
]

BPM_RANGES: list[BpmRange] = [
    BpmRange(ALL_BPM, 0, 999),
    BpmRange("Slow (60-90)", 60, 90),
    BpmRange("Mid (90-120)", 90, 120),
    BpmRange("Fast (120-150)", 120, 150),
    BpmRange("Very Fast (150+)", 150, 999),
]


def get_genre(genre_id: str) -> Genre | None:
    """Look up a genre by id."""
    for genre in GENRES:
        if genre.id == genre_id:
            return genre
    return None
