"""Beat search and browse catalog routes for the BeatFinder API."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_search_service
from api.schemas import BeatSchema, BpmRangeSchema, FiltersResponse, GenreResponse, SearchResponse
from models.genre import ALL_BPM, ALL_CHANNELS, ALL_KEYS, ALL_TYPES, BPM_RANGES, GENRES, MUSICAL_KEYS, get_genre
from services.title_parsing import filter_by_bpm, filter_by_channel, filter_by_key, filter_by_type, unique_channels
from services.youtube_search import SearchServiceError, YouTubeSearchService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Search"])


@router.get("/api/genres", summary="Genre catalog", response_model=list[GenreResponse])
async def list_genres() -> list[GenreResponse]:
    return [GenreResponse(id=g.id, label=g.label, emoji=g.emoji, search_term=g.search_term) for g in GENRES]


@router.get("/api/filters", summary="Browse filters", response_model=FiltersResponse)
async def list_filters() -> FiltersResponse:
    """Values accepted by the key and bpm parameters of /api/search."""
    return FiltersResponse(
        keys=MUSICAL_KEYS,
        bpm_ranges=[BpmRangeSchema(label=r.label, min=r.min, max=r.max) for r in BPM_RANGES],
    )


@router.get(
    "/api/search",
    summary="Search beats",
    description=(
        "Search YouTube for beats by free text (q) or genre id. Queries without 'beat' or "
        "'instrumental' are biased toward type beats. Key, BPM, type and channel filters "
        "apply to the returned page only."
    ),
    response_model=SearchResponse,
    responses={
        400: {"description": "Neither q nor genre given, or unknown BPM range"},
        404: {"description": "Unknown genre"},
        502: {"description": "Search provider failed"},
        503: {"description": "Search not configured"},
    },
)
async def search_beats(
    q: str | None = Query(None, min_length=1),
    genre: str | None = None,
    page_token: str | None = None,
    key: str = ALL_KEYS,
    bpm: str = ALL_BPM,
    type_beat: str = ALL_TYPES,
    channel: str = ALL_CHANNELS,
    service: YouTubeSearchService = Depends(get_search_service),
) -> SearchResponse:
    if genre is not None:
        selected = get_genre(genre)
        if selected is None:
            raise HTTPException(status_code=404, detail=f"Unknown genre: {genre}")
        query = selected.search_term
    elif q:
        query = q
    else:
        raise HTTPException(status_code=400, detail="Provide q or genre")

    bpm_range = next((r for r in BPM_RANGES if r.label == bpm), None)
    if bpm_range is None:
        raise HTTPException(status_code=400, detail=f"Unknown BPM range: {bpm}")

    if not service.is_configured():
        raise HTTPException(status_code=503, detail="YOUTUBE_API_KEY not configured in .env")

    try:
        page = await service.search_beats(query, page_token=page_token)
    except SearchServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))

    beats = filter_by_key(page.beats, key)
    beats = filter_by_bpm(beats, bpm_range)
    beats = filter_by_type(beats, type_beat)
    beats = filter_by_channel(beats, channel)
    if len(beats) != len(page.beats):
        logger.debug(f"Filters kept {len(beats)} of {len(page.beats)} beats for '{query}'")

    return SearchResponse(
        beats=[BeatSchema.from_model(beat) for beat in beats],
        next_page_token=page.next_page_token,
        channels=unique_channels(page.beats),
    )
