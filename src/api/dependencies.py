"""Service singletons and dependency injection for the BeatFinder API."""

import logging

import httpx

from services.document_store import DocumentStore
from services.extraction_backends import build_default_backends
from services.favorites import FavoritesStore
from services.ranking_ledger import RankingLedger
from services.resolver import Resolver
from services.youtube_search import YouTubeSearchService
from utils.config import load_config

logger = logging.getLogger(__name__)

# Service singletons
_config: dict | None = None
_http_client: httpx.AsyncClient | None = None
_document_store: DocumentStore | None = None
_resolver: Resolver | None = None
_ranking_ledger: RankingLedger | None = None
_favorites_store: FavoritesStore | None = None
_search_service: YouTubeSearchService | None = None


def get_config() -> dict:
    """Get or load the configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_http_client() -> httpx.AsyncClient:
    """Get or create the shared HTTP client used by extraction backends."""
    global _http_client
    if _http_client is None:
        # Deadlines are per backend, passed on each request
        _http_client = httpx.AsyncClient(follow_redirects=True, timeout=None)
    return _http_client


def get_document_store() -> DocumentStore:
    """Get or create the document store (connected in the app lifespan)."""
    global _document_store
    if _document_store is None:
        _document_store = DocumentStore(get_config()["database_path"])
    return _document_store


def get_resolver() -> Resolver:
    """Get or create the audio resolver."""
    global _resolver
    if _resolver is None:
        _resolver = Resolver(build_default_backends(get_config(), client=get_http_client()))
    return _resolver


def get_ranking_ledger() -> RankingLedger:
    """Get or create the ranking ledger."""
    global _ranking_ledger
    if _ranking_ledger is None:
        _ranking_ledger = RankingLedger(get_document_store(), max_attempts=get_config()["vote_max_attempts"])
    return _ranking_ledger


def get_favorites_store() -> FavoritesStore:
    """Get or create the favorites store."""
    global _favorites_store
    if _favorites_store is None:
        _favorites_store = FavoritesStore(get_document_store())
    return _favorites_store


def get_search_service() -> YouTubeSearchService:
    """Get or create the YouTube search service."""
    global _search_service
    if _search_service is None:
        _search_service = YouTubeSearchService(get_config().get("youtube_api_key") or "")
    return _search_service


async def startup() -> None:
    """Connect long-lived resources."""
    await get_document_store().connect()


async def shutdown() -> None:
    """Close long-lived resources and drop singletons."""
    global _http_client, _document_store, _resolver, _ranking_ledger, _favorites_store, _search_service
    if _document_store is not None:
        await _document_store.close()
    if _http_client is not None:
        await _http_client.aclose()
    _http_client = None
    _document_store = None
    _resolver = None
    _ranking_ledger = None
    _favorites_store = None
    _search_service = None
