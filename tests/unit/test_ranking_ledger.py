"""Unit tests for the ranking ledger (votes, leaderboard, username claims)."""

import asyncio

import pytest

from models.beat import ClaimResult, Identity, VoteChoice
from services.document_store import ConflictError
from services.ranking_ledger import BEATS, RankingLedger, _vote_deltas, votes_collection


@pytest.fixture
def ledger(document_store):
    return RankingLedger(document_store)


class TestVoteDeltas:
    """Counter arithmetic for each vote transition."""

    @pytest.mark.parametrize(
        "existing,choice,expected",
        [
            (None, VoteChoice.LIKE, (1, 0)),
            (None, VoteChoice.DISLIKE, (0, 1)),
            (VoteChoice.DISLIKE, VoteChoice.LIKE, (1, -1)),
            (VoteChoice.LIKE, VoteChoice.DISLIKE, (-1, 1)),
        ],
    )
    def test_deltas(self, existing, choice, expected):
        assert _vote_deltas(existing, choice) == expected


class TestCastVote:
    """Voting semantics."""

    @pytest.mark.asyncio
    async def test_first_vote_creates_aggregate(self, ledger, document_store, sample_beat, max_identity):
        await ledger.cast_vote(sample_beat, VoteChoice.LIKE, max_identity)

        aggregate = await document_store.get(BEATS, sample_beat.video_id)
        assert aggregate["likes"] == 1
        assert aggregate["dislikes"] == 0
        assert aggregate["net_votes"] == 1
        assert aggregate["title"] == sample_beat.title
        assert aggregate["bpm"] == 140
        assert aggregate["first_seen_at"] == aggregate["last_vote_at"]

        vote = await document_store.get(votes_collection(sample_beat.video_id), "max")
        assert vote["vote"] == "like"
        assert vote["username"] == "Max"

    @pytest.mark.asyncio
    async def test_repeat_vote_is_idempotent(self, ledger, document_store, sample_beat, max_identity):
        """Casting the same choice twice leaves the counters unchanged."""
        await ledger.cast_vote(sample_beat, "like", max_identity)
        first = await document_store.get(BEATS, sample_beat.video_id)

        await ledger.cast_vote(sample_beat, "like", max_identity)
        second = await document_store.get(BEATS, sample_beat.video_id)

        assert second == first

    @pytest.mark.asyncio
    async def test_flip_moves_one_count(self, ledger, document_store, sample_beat, max_identity):
        """like then dislike by the same user gives likes=0, dislikes=1."""
        await ledger.cast_vote(sample_beat, VoteChoice.LIKE, max_identity)
        await ledger.cast_vote(sample_beat, VoteChoice.DISLIKE, max_identity)

        aggregate = await document_store.get(BEATS, sample_beat.video_id)
        assert (aggregate["likes"], aggregate["dislikes"], aggregate["net_votes"]) == (0, 1, -1)
        vote = await ledger.get_vote(max_identity, sample_beat.video_id)
        assert vote.choice is VoteChoice.DISLIKE
        assert vote.voter_id == "max"
        assert vote.cast_at is not None

    @pytest.mark.asyncio
    async def test_first_seen_survives_later_votes(
        self, ledger, document_store, sample_beat, max_identity, ana_identity
    ):
        await ledger.cast_vote(sample_beat, VoteChoice.LIKE, max_identity)
        first_seen = (await document_store.get(BEATS, sample_beat.video_id))["first_seen_at"]

        await ledger.cast_vote(sample_beat, VoteChoice.LIKE, ana_identity)

        aggregate = await document_store.get(BEATS, sample_beat.video_id)
        assert aggregate["first_seen_at"] == first_seen
        assert aggregate["likes"] == 2

    @pytest.mark.asyncio
    async def test_concurrent_voters_are_both_counted(
        self, ledger, document_store, sample_beat, max_identity, ana_identity
    ):
        """Two users liking at the same time both land in the counter."""
        await asyncio.gather(
            ledger.cast_vote(sample_beat, VoteChoice.LIKE, max_identity),
            ledger.cast_vote(sample_beat, VoteChoice.LIKE, ana_identity),
        )

        aggregate = await document_store.get(BEATS, sample_beat.video_id)
        assert aggregate["likes"] == 2
        assert aggregate["net_votes"] == 2

    @pytest.mark.asyncio
    async def test_counters_match_vote_documents_under_contention(self, document_store, sample_beat):
        """After a burst of concurrent votes, counts equal the stored votes."""
        ledger = RankingLedger(document_store, max_attempts=20)
        voters = [Identity.from_display_name(f"user {i}") for i in range(10)]
        choices = [VoteChoice.LIKE if i % 3 else VoteChoice.DISLIKE for i in range(10)]

        await asyncio.gather(
            *(ledger.cast_vote(sample_beat, choice, voter) for voter, choice in zip(voters, choices))
        )

        stored = [(await ledger.get_vote(voter, sample_beat.video_id)).choice for voter in voters]
        aggregate = await document_store.get(BEATS, sample_beat.video_id)
        assert aggregate["likes"] == stored.count(VoteChoice.LIKE) == 6
        assert aggregate["dislikes"] == stored.count(VoteChoice.DISLIKE) == 4
        assert aggregate["net_votes"] == 2

    @pytest.mark.asyncio
    async def test_invalid_choice_rejected(self, ledger, sample_beat, max_identity):
        with pytest.raises(ValueError):
            await ledger.cast_vote(sample_beat, "skip", max_identity)

    @pytest.mark.asyncio
    async def test_empty_slug_rejected(self, ledger, sample_beat):
        with pytest.raises(ValueError):
            await ledger.cast_vote(sample_beat, VoteChoice.LIKE, Identity.from_display_name("!!!"))

    @pytest.mark.asyncio
    async def test_conflict_error_surfaces(self, document_store, sample_beat, max_identity):
        """When the retry budget runs out the caller sees ConflictError."""

        async def always_conflict(fn, max_attempts=5):
            raise ConflictError("gave up")

        document_store.run_transaction = always_conflict
        with pytest.raises(ConflictError):
            await RankingLedger(document_store).cast_vote(sample_beat, VoteChoice.LIKE, max_identity)


class TestLeaderboard:
    """Rankings query."""

    @pytest.mark.asyncio
    async def test_top_beats_by_net_votes(self, ledger, make_beat):
        """Net votes [5, -1, 5, 0] with limit 3 returns both 5s then the 0."""
        layout = {"a": (5, 0), "b": (0, 1), "c": (5, 0), "d": (1, 1)}
        for video_id, (likes, dislikes) in layout.items():
            beat = make_beat(video_id)
            for i in range(likes):
                await ledger.cast_vote(beat, VoteChoice.LIKE, Identity.from_display_name(f"liker {i}"))
            for i in range(dislikes):
                await ledger.cast_vote(beat, VoteChoice.DISLIKE, Identity.from_display_name(f"hater {i}"))

        top = await ledger.get_leaderboard(limit=3)

        assert [b.net_votes for b in top] == [5, 5, 0]
        assert {b.video_id for b in top[:2]} == {"a", "c"}
        assert top[2].video_id == "d"

    @pytest.mark.asyncio
    async def test_empty_leaderboard(self, ledger):
        assert await ledger.get_leaderboard() == []

    @pytest.mark.asyncio
    async def test_non_positive_limit_rejected(self, ledger):
        with pytest.raises(ValueError):
            await ledger.get_leaderboard(limit=0)


class TestEnsureUser:
    """Username claiming."""

    @pytest.mark.asyncio
    async def test_claim_collision_and_reentry(self, ledger, document_store):
        assert await ledger.ensure_user("max", "Max") is ClaimResult.CREATED
        assert await ledger.ensure_user("max", "MAX2") is ClaimResult.TAKEN
        assert await ledger.ensure_user("max", "Max") is ClaimResult.RETURNING

        doc = await document_store.get("users", "max")
        assert doc["username"] == "Max"
        assert doc["last_seen"] >= doc["created_at"]

    @pytest.mark.asyncio
    async def test_concurrent_claims_have_one_winner(self, ledger):
        results = await asyncio.gather(ledger.ensure_user("max", "Max"), ledger.ensure_user("max", "MAX!"))
        assert sorted(r.value for r in results) == ["created", "taken"]

    @pytest.mark.asyncio
    async def test_empty_slug_rejected(self, ledger):
        with pytest.raises(ValueError):
            await ledger.ensure_user("", "???")
