"""Vote and rankings routes for the BeatFinder API."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.dependencies import get_ranking_ledger
from api.schemas import RankedBeatResponse, VoteRequest, VoteResponse
from models.beat import Identity
from services.document_store import ConflictError
from services.ranking_ledger import DEFAULT_LEADERBOARD_SIZE, RankingLedger
from utils.logging import bind_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Rankings"])


@router.post(
    "/api/votes",
    summary="Cast vote",
    description="Record the user's current like/dislike on a beat. Repeating a vote is a no-op.",
    status_code=204,
    responses={409: {"description": "Too much contention, retry"}, 400: {"description": "Invalid username"}},
)
async def cast_vote(
    request: VoteRequest, http_request: Request, ledger: RankingLedger = Depends(get_ranking_ledger)
) -> Response:
    voter = Identity.from_display_name(request.username)
    if not voter.slug:
        raise HTTPException(status_code=400, detail="Username must contain letters or digits")
    bind_user(voter.slug, http_request.state)

    try:
        await ledger.cast_vote(request.beat.to_model(), request.choice, voter)
    except ConflictError as e:
        logger.warning(f"Vote on {request.beat.video_id} by {voter.slug} not committed: {e}")
        raise HTTPException(status_code=409, detail="Vote could not be saved, please retry")

    return Response(status_code=204)


@router.get(
    "/api/rankings",
    summary="Leaderboard",
    description="Beats ordered by net votes (likes minus dislikes), highest first.",
    response_model=list[RankedBeatResponse],
)
async def get_rankings(
    limit: int = Query(DEFAULT_LEADERBOARD_SIZE, ge=1, le=200),
    ledger: RankingLedger = Depends(get_ranking_ledger),
) -> list[RankedBeatResponse]:
    aggregates = await ledger.get_leaderboard(limit)
    return [RankedBeatResponse.from_aggregate(a) for a in aggregates]


@router.get(
    "/api/votes/{video_id}",
    summary="Current vote",
    description="The user's current vote on a beat, so the client can restore swipe state.",
    response_model=VoteResponse,
    responses={404: {"description": "No vote from this user"}},
)
async def get_vote(
    video_id: str,
    username: str = Query(..., min_length=1),
    ledger: RankingLedger = Depends(get_ranking_ledger),
) -> VoteResponse:
    vote = await ledger.get_vote(Identity.from_display_name(username), video_id)
    if vote is None:
        raise HTTPException(status_code=404, detail="No vote recorded")
    return VoteResponse(video_id=vote.video_id, username=vote.voter_id, choice=vote.choice.value, voted_at=vote.cast_at)
