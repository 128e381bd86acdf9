"""Shared pytest fixtures for beatfinder tests."""

import sys
from pathlib import Path
from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from models.beat import Beat, Identity  # noqa: E402
from services.document_store import DocumentStore  # noqa: E402


@pytest_asyncio.fixture
async def document_store(tmp_path) -> AsyncGenerator[DocumentStore, None]:
    """Connected document store on a temporary database file."""
    store = DocumentStore(str(tmp_path / "test.db"))
    await store.connect()
    try:
        yield store
    finally:
        await store.close()


@pytest.fixture
def sample_config(tmp_path) -> Dict:
    """Sample configuration for testing."""
    return {
        "youtube_api_key": "test_youtube_key",
        "cobalt_instances": ["https://cobalt.example.com"],
        "piped_instances": ["https://piped.example.com"],
        "audio_bitrate": "320",
        "direct_timeout_seconds": 8.0,
        "proxy_url": "https://relay.example.com",
        "proxy_timeout_seconds": 20.0,
        "ytdlp_enabled": True,
        "ytdlp_timeout_seconds": 30.0,
        "ytdlp_cookies_file": None,
        "manual_tool_url": "https://tool.example.com/mp3/{video_id}",
        "database_path": str(tmp_path / "beatfinder.db"),
        "vote_max_attempts": 5,
        "downloads_dir": str(tmp_path / "downloads"),
        "cors_origins": ["http://localhost:5173"],
        "log_level": "INFO",
        "json_logs": False,
    }


@pytest.fixture
def sample_beat() -> Beat:
    """A beat as produced by search."""
    return Beat(
        video_id="vid_001",
        title="Dark 140 BPM Type Beat",
        thumbnail="https://i.ytimg.com/vi/vid_001/hqdefault.jpg",
        channel_title="Prod. Night",
        bpm=140,
    )


@pytest.fixture
def make_beat():
    """Factory for beats with distinct ids."""

    def _make(video_id: str, title: str | None = None) -> Beat:
        return Beat(
            video_id=video_id,
            title=title or f"Beat {video_id}",
            thumbnail=f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
            channel_title="Test Channel",
        )

    return _make


@pytest.fixture
def max_identity() -> Identity:
    return Identity.from_display_name("Max")


@pytest.fixture
def ana_identity() -> Identity:
    return Identity.from_display_name("Ana")
