"""Title heuristics and browse filters for beat search results."""

import html
import re
from typing import Optional

from models.beat import Beat
from models.genre import ALL_BPM, ALL_CHANNELS, ALL_KEYS, ALL_TYPES, BpmRange

MIN_BPM = 60
MAX_BPM = 200

BPM_PATTERNS = [
    re.compile(r"(\d{2,3})\s*bpm", re.IGNORECASE),  # "140 BPM", "140bpm"
    re.compile(r"bpm\s*(\d{2,3})", re.IGNORECASE),  # "BPM 140"
]

TYPE_BEAT_PATTERNS = [
    re.compile(r"\[?\s*(\w+(?:\s+\w+)?)\s+type\s*(?:beat)?\s*\]?", re.IGNORECASE),  # "Drake Type Beat", "[Drake Type]"
    re.compile(r"type\s+(\w+(?:\s+\w+)?)\s+beat", re.IGNORECASE),  # "Type Drake Beat"
]

# Adjectives that show up before "type beat" but are not artists
GENERIC_WORDS = frozenset(
    ["free", "hard", "dark", "chill", "sad", "trap", "drill", "boom", "bap", "lofi", "lo-fi"]
)

BEAT_KEYWORDS = ("beat", "instrumental")
QUERY_SUFFIX = "type beat instrumental"


def decode_html_entities(text: str) -> str:
    """Decode entities the YouTube API leaves in titles (&amp; &quot; &#39;)."""
    return html.unescape(text)


def parse_bpm(title: str) -> Optional[int]:
    """Extract a plausible tempo from a title.

    Returns:
        BPM in [60, 200], or None
    """
    for pattern in BPM_PATTERNS:
        match = pattern.search(title)
        if match:
            bpm = int(match.group(1))
            if MIN_BPM <= bpm <= MAX_BPM:
                return bpm
    return None


def parse_type_beat(title: str) -> Optional[str]:
    """Extract the "<artist> type beat" artist from a title."""
    for pattern in TYPE_BEAT_PATTERNS:
        match = pattern.search(title)
        if match:
            artist = match.group(1).strip()
            if artist.lower() not in GENERIC_WORDS and len(artist) > 1:
                return artist
    return None


def build_search_query(query: str) -> str:
    """Bias free-text queries toward instrumentals."""
    lowered = query.lower()
    if any(keyword in lowered for keyword in BEAT_KEYWORDS):
        return query
    return f"{query} {QUERY_SUFFIX}"


def filter_by_key(beats: list[Beat], key: str) -> list[Beat]:
    if key == ALL_KEYS:
        return beats
    # '#' is not a word character, so a plain \b would never close "C#"
    pattern = re.compile(rf"(?<!\w){re.escape(key)}(?![\w#])", re.IGNORECASE)
    return [beat for beat in beats if pattern.search(beat.title)]


def filter_by_bpm(beats: list[Beat], bpm_range: BpmRange) -> list[Beat]:
    if bpm_range.label == ALL_BPM:
        return beats
    return [beat for beat in beats if beat.bpm and bpm_range.contains(beat.bpm)]


def filter_by_type(beats: list[Beat], type_beat: str) -> list[Beat]:
    if type_beat == ALL_TYPES:
        return beats
    wanted = type_beat.lower()
    return [beat for beat in beats if beat.type_beat and beat.type_beat.lower() == wanted]


def filter_by_channel(beats: list[Beat], channel: str) -> list[Beat]:
    if channel == ALL_CHANNELS:
        return beats
    return [beat for beat in beats if beat.channel_title == channel]


def unique_channels(beats: list[Beat]) -> list[str]:
    return sorted({beat.channel_title for beat in beats})
