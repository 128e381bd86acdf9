"""SQLite-backed document store with optimistic transactions.

Documents are JSON bodies addressed by (collection, key), each carrying a
version counter. run_transaction() executes a read-modify-write callback:
reads record the version they saw, writes are buffered, and the commit
checks that every version read is still current before applying the
writes. A stale read aborts the attempt and the callback runs again.

Uses aiosqlite for async database operations.
"""

import asyncio
import json
import logging
import random
import re
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import aiosqlite

from models.beat import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = ".beatfinder/beatfinder.db"
DEFAULT_MAX_ATTEMPTS = 5

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

T = TypeVar("T")
DocRef = tuple[str, str]


class _ServerTimestamp:
    """Placeholder replaced with the commit time when a write is applied."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class DocumentStoreError(Exception):
    """Store is unavailable or misused."""

    pass


class ConflictError(DocumentStoreError):
    """A transaction kept losing to concurrent writers and gave up."""

    pass


class _StaleRead(Exception):
    pass


class Transaction:
    """Read-modify-write unit handed to run_transaction callbacks."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._reads: dict[DocRef, int] = {}
        # None marks a delete; otherwise (data, merge)
        self._writes: dict[DocRef, Optional[tuple[dict[str, Any], bool]]] = {}

    @property
    def has_writes(self) -> bool:
        return bool(self._writes)

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        """Read a document, seeing this transaction's own pending writes.

        Returns:
            Document body or None if it does not exist
        """
        ref = (collection, key)
        data, version = await self._store._fetch(collection, key)
        self._reads.setdefault(ref, version)

        if ref not in self._writes:
            return data
        pending = self._writes[ref]
        if pending is None:
            return None
        body, merge = pending
        if merge and data is not None:
            return {**data, **body}
        return dict(body)

    def set(self, collection: str, key: str, data: dict[str, Any], merge: bool = False) -> None:
        """Buffer a write. With merge=True, fields are merged into the stored body."""
        ref = (collection, key)
        previous = self._writes.get(ref)
        if merge and previous is not None:
            prev_body, prev_merge = previous
            self._writes[ref] = ({**prev_body, **data}, prev_merge)
        else:
            self._writes[ref] = (dict(data), merge)

    def delete(self, collection: str, key: str) -> None:
        self._writes[(collection, key)] = None


class DocumentStore:
    """Async SQLite document storage.

    A single connection is shared; an asyncio lock keeps reads from
    observing a commit that is still being applied. The lock is never held
    across a transaction callback, so concurrent transactions interleave
    freely and are reconciled by version checks.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize document store with database path.

        Args:
            db_path: Path to SQLite database file, or ":memory:". Parent
                     directory will be created if it doesn't exist.
        """
        self.db_path = db_path
        self.db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open the database and create the schema."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        # Autocommit mode: transactions are managed explicitly in _commit()
        self.db = await aiosqlite.connect(self.db_path, isolation_level=None)
        self.db.row_factory = aiosqlite.Row

        if self.db_path != ":memory:":
            await self.db.execute("PRAGMA journal_mode=WAL")

        await self.db.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                key TEXT NOT NULL,
                data JSON NOT NULL,
                version INTEGER NOT NULL DEFAULT 1,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (collection, key)
            )
        """)

        # Rankings query orders beats by net votes
        await self.db.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_net_votes
            ON documents (collection, json_extract(data, '$.net_votes') DESC)
        """)

        logger.info(f"Document store connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self.db:
            await self.db.close()
            self.db = None
            logger.info("Document store connection closed")

    def _require_db(self) -> aiosqlite.Connection:
        if self.db is None:
            raise DocumentStoreError("Database not connected. Call connect() first.")
        return self.db

    async def _fetch_unlocked(self, collection: str, key: str) -> tuple[Optional[dict[str, Any]], int]:
        db = self._require_db()
        async with db.execute(
            "SELECT data, version FROM documents WHERE collection = ? AND key = ?", (collection, key)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None, 0
        return json.loads(row["data"]), row["version"]

    async def _fetch(self, collection: str, key: str) -> tuple[Optional[dict[str, Any]], int]:
        async with self._lock:
            return await self._fetch_unlocked(collection, key)

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        """Read a single document outside of any transaction."""
        data, _ = await self._fetch(collection, key)
        return data

    async def query(
        self,
        collection: str,
        order_by: str,
        descending: bool = True,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Return documents of a collection ordered by a top-level field.

        Ties keep SQLite's natural order, which is not guaranteed stable.

        Args:
            collection: Collection name
            order_by: Top-level JSON field to sort on
            descending: Sort direction
            limit: Maximum number of documents

        Returns:
            List of document bodies
        """
        if not _FIELD_NAME.match(order_by):
            raise ValueError(f"Invalid field name: {order_by!r}")
        if limit <= 0:
            return []

        db = self._require_db()
        direction = "DESC" if descending else "ASC"
        sql = (
            f"SELECT data FROM documents WHERE collection = ? "
            f"ORDER BY json_extract(data, '$.{order_by}') {direction} LIMIT ?"
        )
        async with self._lock:
            async with db.execute(sql, (collection, limit)) as cursor:
                rows = await cursor.fetchall()
        return [json.loads(row["data"]) for row in rows]

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[T]],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = 0.01,
    ) -> T:
        """Run a read-modify-write callback atomically.

        The callback may run several times; it must not have side effects
        outside the transaction.

        Args:
            fn: Async callback receiving a Transaction
            max_attempts: Commit attempts before giving up
            base_delay: Initial backoff between attempts (seconds, doubled each retry)

        Returns:
            The callback's return value from the attempt that committed

        Raises:
            ConflictError: If every attempt hit a concurrent write
        """
        for attempt in range(1, max_attempts + 1):
            tx = Transaction(self)
            result = await fn(tx)
            if not tx.has_writes:
                return result
            try:
                await self._commit(tx)
                return result
            except _StaleRead:
                logger.debug(f"Transaction conflict (attempt {attempt}/{max_attempts})")
                if attempt < max_attempts:
                    await asyncio.sleep(base_delay * (2 ** (attempt - 1)) * (1 + random.random()))

        raise ConflictError(f"Transaction aborted after {max_attempts} conflicting attempts")

    async def _commit(self, tx: Transaction) -> None:
        db = self._require_db()
        async with self._lock:
            await db.execute("BEGIN IMMEDIATE")
            try:
                for (collection, key), seen_version in tx._reads.items():
                    _, current_version = await self._fetch_unlocked(collection, key)
                    if current_version != seen_version:
                        raise _StaleRead()

                now = utc_now_iso()
                for (collection, key), pending in tx._writes.items():
                    if pending is None:
                        await db.execute("DELETE FROM documents WHERE collection = ? AND key = ?", (collection, key))
                        continue

                    body, merge = pending
                    existing, version = await self._fetch_unlocked(collection, key)
                    merged = {**existing, **body} if merge and existing else dict(body)
                    merged = {k: (now if v is SERVER_TIMESTAMP else v) for k, v in merged.items()}

                    await db.execute(
                        """
                        INSERT INTO documents (collection, key, data, version, updated_at)
                        VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT (collection, key) DO UPDATE SET
                            data = excluded.data,
                            version = excluded.version,
                            updated_at = excluded.updated_at
                        """,
                        (collection, key, json.dumps(merged), version + 1, now),
                    )
                await db.execute("COMMIT")
            except BaseException:
                await db.execute("ROLLBACK")
                raise
