"""Ranking ledger - crowd-sourced like/dislike counters per beat.

Storage layout on the document store:

    beats/<video_id>                  BeatAggregate body
    beats/<video_id>/votes/<slug>     current vote of one user
    users/<slug>                      claimed username

Every vote runs as one optimistic transaction over the vote and aggregate
documents, so likes/dislikes always equal the number of vote documents
holding each choice.
"""

import logging

from models.beat import Beat, BeatAggregate, ClaimResult, Identity, Vote, VoteChoice
from services.document_store import SERVER_TIMESTAMP, DocumentStore, Transaction

logger = logging.getLogger(__name__)

BEATS = "beats"
USERS = "users"
DEFAULT_LEADERBOARD_SIZE = 50


def votes_collection(video_id: str) -> str:
    return f"{BEATS}/{video_id}/votes"


class RankingLedger:
    """Vote casting, leaderboard queries and username claims."""

    def __init__(self, store: DocumentStore, max_attempts: int = 5):
        """Initialize ledger.

        Args:
            store: Connected document store
            max_attempts: Transaction retry budget per operation
        """
        self.store = store
        self.max_attempts = max_attempts

    async def cast_vote(self, beat: Beat, choice: VoteChoice | str, voter: Identity) -> None:
        """Record a user's current vote on a beat.

        Re-casting the same choice is a no-op; switching choice moves one
        count from the old bucket to the new one.

        Args:
            beat: Beat being voted on (metadata is copied onto the aggregate)
            choice: "like" or "dislike"
            voter: Identity of the voter

        Raises:
            ValueError: If choice is not a valid vote
            ConflictError: If the transaction could not commit within its retry budget
        """
        choice = VoteChoice(choice)
        if not voter.slug:
            raise ValueError("Voter has no usable username slug")

        async def apply_vote(tx: Transaction) -> bool:
            vote_doc = await tx.get(votes_collection(beat.video_id), voter.slug)
            beat_doc = await tx.get(BEATS, beat.video_id)

            existing = VoteChoice(vote_doc["vote"]) if vote_doc else None
            if existing is choice:
                return False

            likes_delta, dislikes_delta = _vote_deltas(existing, choice)
            current = beat_doc or {"likes": 0, "dislikes": 0}
            likes = current.get("likes", 0) + likes_delta
            dislikes = current.get("dislikes", 0) + dislikes_delta

            aggregate = {
                "video_id": beat.video_id,
                "title": beat.title,
                "thumbnail": beat.thumbnail,
                "channel_title": beat.channel_title,
                "bpm": beat.bpm,
                "type_beat": beat.type_beat,
                "likes": likes,
                "dislikes": dislikes,
                "net_votes": likes - dislikes,
                "last_vote_at": SERVER_TIMESTAMP,
            }
            if beat_doc is None:
                aggregate["first_seen_at"] = SERVER_TIMESTAMP

            tx.set(BEATS, beat.video_id, aggregate, merge=True)
            tx.set(
                votes_collection(beat.video_id),
                voter.slug,
                {"username": voter.display_name, "vote": choice.value, "voted_at": SERVER_TIMESTAMP},
            )
            return True

        changed = await self.store.run_transaction(apply_vote, max_attempts=self.max_attempts)
        if changed:
            logger.info(f"Vote {choice.value} by {voter.slug} on {beat.video_id}")
        else:
            logger.debug(f"Repeat {choice.value} by {voter.slug} on {beat.video_id} ignored")

    async def get_vote(self, voter: Identity, video_id: str) -> Vote | None:
        """Return the user's current vote on a beat, if any."""
        doc = await self.store.get(votes_collection(video_id), voter.slug)
        if doc is None:
            return None
        return Vote(voter_id=voter.slug, video_id=video_id, choice=VoteChoice(doc["vote"]), cast_at=doc.get("voted_at"))

    async def get_leaderboard(self, limit: int = DEFAULT_LEADERBOARD_SIZE) -> list[BeatAggregate]:
        """Top beats by net votes, highest first.

        Ties come back in store order; callers must not rely on it.

        Raises:
            ValueError: If limit is not positive
        """
        if limit <= 0:
            raise ValueError("limit must be positive")
        docs = await self.store.query(BEATS, order_by="net_votes", descending=True, limit=limit)
        return [BeatAggregate.from_document(doc) for doc in docs]

    async def ensure_user(self, slug: str, display_name: str) -> ClaimResult:
        """Claim a username slug, or re-enter as its original owner.

        A slug belongs to the first display name that claimed it. Another
        display name mapping to the same slug is refused with TAKEN.

        Args:
            slug: Normalized username key
            display_name: Name as typed by the user

        Returns:
            CREATED, RETURNING or TAKEN
        """
        if not slug:
            raise ValueError("slug must not be empty")

        async def claim(tx: Transaction) -> ClaimResult:
            doc = await tx.get(USERS, slug)
            if doc is None:
                tx.set(
                    USERS,
                    slug,
                    {"username": display_name, "created_at": SERVER_TIMESTAMP, "last_seen": SERVER_TIMESTAMP},
                )
                return ClaimResult.CREATED
            if doc.get("username") != display_name:
                return ClaimResult.TAKEN
            tx.set(USERS, slug, {"last_seen": SERVER_TIMESTAMP}, merge=True)
            return ClaimResult.RETURNING

        result = await self.store.run_transaction(claim, max_attempts=self.max_attempts)
        logger.info(f"Username claim '{slug}': {result.value}")
        return result


def _vote_deltas(existing: VoteChoice | None, choice: VoteChoice) -> tuple[int, int]:
    """Counter changes (likes, dislikes) for moving from existing to choice."""
    if existing is None:
        return (1, 0) if choice is VoteChoice.LIKE else (0, 1)
    return (1, -1) if choice is VoteChoice.LIKE else (-1, 1)
