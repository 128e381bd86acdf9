"""YouTube Data API search for beats.

Quota Budget (10,000 units/day free):
- search.list: 100 units per page of 25 results
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from models.beat import Beat
from services.title_parsing import build_search_query, decode_html_entities, parse_bpm, parse_type_beat

logger = logging.getLogger(__name__)

MUSIC_CATEGORY_ID = "10"


class SearchServiceError(Exception):
    """Search provider failed or is not configured."""

    pass


@dataclass
class SearchPage:
    """One page of beat search results."""

    beats: List[Beat] = field(default_factory=list)
    next_page_token: Optional[str] = None


class YouTubeSearchService:
    """Beat search over YouTube Data API v3.

    The Google client is synchronous; calls run in a worker thread and are
    serialized with a lock because the client is not thread-safe.
    """

    QUOTA_SEARCH = 100
    PAGE_SIZE = 25

    def __init__(self, api_key: str, youtube: Any = None):
        """Initialize the search service.

        Args:
            api_key: YouTube Data API v3 key
            youtube: Prebuilt API resource (tests inject a mock)
        """
        self.api_key = api_key
        self._youtube = youtube
        self._quota_used = 0
        self._lock = threading.RLock()

    @property
    def quota_used(self) -> int:
        """Get total quota units used in this session."""
        return self._quota_used

    def is_configured(self) -> bool:
        return bool(self.api_key) or self._youtube is not None

    @property
    def youtube(self) -> Any:
        if self._youtube is None:
            if not self.api_key:
                raise SearchServiceError("YOUTUBE_API_KEY not configured")
            self._youtube = build("youtube", "v3", developerKey=self.api_key, cache_discovery=False)
        return self._youtube

    def _execute_search(self, query: str, page_token: Optional[str]) -> dict:
        with self._lock:
            params = {
                "part": "snippet",
                "q": query,
                "type": "video",
                "videoCategoryId": MUSIC_CATEGORY_ID,
                "maxResults": self.PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token
            response = self.youtube.search().list(**params).execute()
            self._quota_used += self.QUOTA_SEARCH
            return response

    async def search_beats(self, query: str, page_token: Optional[str] = None) -> SearchPage:
        """Search beats for a genre or free-text query.

        Args:
            query: Genre search term or user query
            page_token: Cursor from a previous page

        Returns:
            SearchPage with parsed beats and the next cursor

        Raises:
            SearchServiceError: If the API call fails
        """
        if not query.strip():
            return SearchPage()

        search_query = build_search_query(query.strip())
        logger.debug(f"Searching YouTube for: '{search_query}' (page {page_token or 'first'})")

        try:
            response = await asyncio.to_thread(self._execute_search, search_query, page_token)
        except HttpError as e:
            logger.error(f"YouTube API error searching beats: {e}")
            raise SearchServiceError(f"YouTube search failed: {e}") from e

        beats = [beat for beat in (self._parse_item(item) for item in response.get("items", [])) if beat]
        logger.info(f"Found {len(beats)} beats for query: {query}")
        return SearchPage(beats=beats, next_page_token=response.get("nextPageToken"))

    @staticmethod
    def _parse_item(item: dict) -> Optional[Beat]:
        """Convert a search.list item into a Beat, or None if it is not a video."""
        video_id = item.get("id", {}).get("videoId")
        snippet = item.get("snippet")
        if not video_id or not snippet:
            return None

        title = decode_html_entities(snippet.get("title", ""))
        thumbnails = snippet.get("thumbnails", {})
        thumbnail = (thumbnails.get("high") or thumbnails.get("medium") or thumbnails.get("default") or {}).get("url", "")

        return Beat(
            video_id=video_id,
            title=title,
            thumbnail=thumbnail,
            channel_title=decode_html_entities(snippet.get("channelTitle", "")),
            bpm=parse_bpm(title),
            type_beat=parse_type_beat(title),
        )
