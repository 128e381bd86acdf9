"""Username and favorites routes for the BeatFinder API."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.dependencies import get_favorites_store, get_ranking_ledger
from api.schemas import BeatSchema, UserClaimRequest, UserClaimResponse
from models.beat import ClaimResult, Identity
from services.document_store import ConflictError
from services.favorites import FavoritesStore
from services.ranking_ledger import RankingLedger
from utils.logging import bind_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


@router.post(
    "/api/users",
    summary="Claim username",
    description="Claim a username, or re-enter with the same name. A slug already held by another name is refused.",
    response_model=UserClaimResponse,
    responses={409: {"description": "Username taken"}, 400: {"description": "Invalid username"}},
)
async def claim_username(
    request: UserClaimRequest, http_request: Request, ledger: RankingLedger = Depends(get_ranking_ledger)
) -> UserClaimResponse:
    identity = Identity.from_display_name(request.username)
    if not identity.slug:
        raise HTTPException(status_code=400, detail="Username must contain letters or digits")
    bind_user(identity.slug, http_request.state)

    try:
        result = await ledger.ensure_user(identity.slug, identity.display_name)
    except ConflictError:
        raise HTTPException(status_code=409, detail="Username could not be saved, please retry")

    if result is ClaimResult.TAKEN:
        raise HTTPException(status_code=409, detail="That name is already taken, choose another")

    return UserClaimResponse(username=identity.display_name, slug=identity.slug, status=result.value)


@router.get("/api/users/{slug}/favorites", summary="List favorites", response_model=list[BeatSchema])
async def list_favorites(slug: str, favorites: FavoritesStore = Depends(get_favorites_store)) -> list[BeatSchema]:
    beats = await favorites.list_favorites(slug)
    return [BeatSchema.from_model(beat) for beat in beats]


@router.post(
    "/api/users/{slug}/favorites",
    summary="Save favorite",
    description="Save a beat. Already-saved beats and saves beyond the cap are ignored.",
    responses={409: {"description": "Too much contention, retry"}},
)
async def add_favorite(
    slug: str, beat: BeatSchema, http_request: Request, favorites: FavoritesStore = Depends(get_favorites_store)
) -> dict:
    bind_user(slug, http_request.state)
    try:
        added = await favorites.add(slug, beat.to_model())
    except ConflictError:
        raise HTTPException(status_code=409, detail="Favorite could not be saved, please retry")
    return {"added": added, "video_id": beat.video_id}


@router.delete(
    "/api/users/{slug}/favorites/{video_id}",
    summary="Remove favorite",
    status_code=204,
    responses={404: {"description": "Not a favorite"}, 409: {"description": "Too much contention, retry"}},
)
async def remove_favorite(
    slug: str, video_id: str, http_request: Request, favorites: FavoritesStore = Depends(get_favorites_store)
) -> Response:
    bind_user(slug, http_request.state)
    try:
        removed = await favorites.remove(slug, video_id)
    except ConflictError:
        raise HTTPException(status_code=409, detail="Favorite could not be removed, please retry")
    if not removed:
        raise HTTPException(status_code=404, detail="Favorite not found")
    return Response(status_code=204)
