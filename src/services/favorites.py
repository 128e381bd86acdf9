"""Per-user saved beats."""

import logging

from models.beat import Beat, utc_now_iso
from services.document_store import DEFAULT_MAX_ATTEMPTS, DocumentStore, Transaction

logger = logging.getLogger(__name__)

MAX_FAVORITES = 100

# users/<slug>/meta/favorites holds {"count": n}; every add and remove
# reads it in-transaction so concurrent saves conflict on it.
COUNTER_KEY = "favorites"


def favorites_collection(slug: str) -> str:
    return f"users/{slug}/favorites"


def meta_collection(slug: str) -> str:
    return f"users/{slug}/meta"


class FavoritesStore:
    """Saved-beats list, newest first, capped at MAX_FAVORITES."""

    def __init__(
        self, store: DocumentStore, max_favorites: int = MAX_FAVORITES, max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ):
        self.store = store
        self.max_favorites = max_favorites
        self.max_attempts = max_attempts

    async def list_favorites(self, slug: str) -> list[Beat]:
        docs = await self.store.query(
            favorites_collection(slug), order_by="saved_at", descending=True, limit=self.max_favorites
        )
        return [Beat.from_dict(doc) for doc in docs]

    async def add(self, slug: str, beat: Beat) -> bool:
        """Save a beat.

        Returns:
            True if the beat was added, False if it was already saved or the
            list is full
        """
        collection = favorites_collection(slug)

        async def add_favorite(tx: Transaction) -> bool:
            counter = await tx.get(meta_collection(slug), COUNTER_KEY) or {}
            if await tx.get(collection, beat.video_id) is not None:
                return False
            count = counter.get("count", 0)
            if count >= self.max_favorites:
                logger.info(f"Favorites full for {slug}, not saving {beat.video_id}")
                return False
            saved = Beat.from_dict({**beat.to_dict(), "saved_at": utc_now_iso()})
            tx.set(collection, beat.video_id, saved.to_dict())
            tx.set(meta_collection(slug), COUNTER_KEY, {"count": count + 1})
            return True

        return await self.store.run_transaction(add_favorite, max_attempts=self.max_attempts)

    async def remove(self, slug: str, video_id: str) -> bool:
        collection = favorites_collection(slug)

        async def remove_favorite(tx: Transaction) -> bool:
            counter = await tx.get(meta_collection(slug), COUNTER_KEY) or {}
            if await tx.get(collection, video_id) is None:
                return False
            tx.delete(collection, video_id)
            tx.set(meta_collection(slug), COUNTER_KEY, {"count": max(counter.get("count", 0) - 1, 0)})
            return True

        return await self.store.run_transaction(remove_favorite, max_attempts=self.max_attempts)

    async def contains(self, slug: str, video_id: str) -> bool:
        return await self.store.get(favorites_collection(slug), video_id) is not None
