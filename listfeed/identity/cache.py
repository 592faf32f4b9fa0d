"""Bidirectional handle <-> DID cache.

Rather than an LRU keyed in one direction, entries live in an in-memory
SQLite table with a unique index on each column, so lookups work in either
direction from a single copy of each pair.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Literal

import aiosqlite

from ..clock import epoch_ms

LOGGER = logging.getLogger(__name__)

LookupKind = Literal["handle", "did"]
Resolver = Callable[[], Awaitable[str]]

_SCHEMA = (
    """
    CREATE TABLE handle_lookup (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        handle TEXT NOT NULL,
        did TEXT NOT NULL,
        cached_at INTEGER NOT NULL
    )
    """,
    "CREATE UNIQUE INDEX idx_handle ON handle_lookup (handle)",
    "CREATE UNIQUE INDEX idx_did ON handle_lookup (did)",
)

_COUNTERPART: dict[LookupKind, LookupKind] = {"handle": "did", "did": "handle"}


@dataclass(frozen=True)
class CacheEntry:
    id: int
    handle: str
    did: str
    cached_at: int


class HandleCache:
    """Bounded cache of handle/DID pairs.

    Entries are inserted on a miss and never updated. Every insert is
    followed by one eviction pass that removes:
    - entries more than ``max`` inserts old (``id <= newest_id - max``)
    - entries cached longer ago than ``ttl``

    Use :meth:`create` to build a cache; it returns a ready instance with
    its table and indexes in place.

    Attributes:
        max: Maximum number of most recently inserted entries kept
        ttl: Maximum age of an entry
        clock: Current time in epoch milliseconds

    Example:
        >>> cache = await HandleCache.create(max=1000, ttl=timedelta(hours=5))
        >>> did = await cache.fetch_did("alice.bsky.social", resolve_alice)
        >>> await cache.fetch_handle(did, resolve_profile)  # hit, no resolution
        'alice.bsky.social'

    Note:
        Two concurrent misses on the same key both call their resolver and
        both try to insert. The unique indexes let only one insert win; the
        other write is dropped, and both callers still get the resolved
        value.
    """

    def __init__(
        self,
        db: aiosqlite.Connection,
        max: int,
        ttl: timedelta,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self._db = db
        self.max = max
        self.ttl = ttl
        self.clock = clock

    @classmethod
    async def create(
        cls,
        max: int,
        ttl: timedelta,
        clock: Callable[[], int] = epoch_ms,
    ) -> "HandleCache":
        """Open the backing store and create its schema.

        Raises:
            ValueError: If max is not positive
            aiosqlite.Error: If the store cannot be initialized
        """
        if max <= 0:
            raise ValueError("max must be positive")
        # autocommit: the insert and the eviction are independent statements
        db = await aiosqlite.connect(":memory:", isolation_level=None)
        try:
            for statement in _SCHEMA:
                await db.execute(statement)
        except aiosqlite.Error:
            await db.close()
            raise
        return cls(db, max, ttl, clock)

    async def close(self) -> None:
        await self._db.close()

    async def size(self) -> int:
        """Number of cached entries."""
        async with self._db.execute("SELECT COUNT(id) FROM handle_lookup") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def peek(self, kind: LookupKind, value: str) -> CacheEntry | None:
        """Look up an entry without resolving, inserting or evicting."""
        column = _column(kind)
        async with self._db.execute(
            f"SELECT id, handle, did, cached_at FROM handle_lookup WHERE {column} = ? LIMIT 1",
            (value,),
        ) as cursor:
            row = await cursor.fetchone()
        return CacheEntry(*row) if row else None

    async def fetch_did(self, handle: str, resolver: Resolver) -> str:
        return await self.fetch("handle", handle, resolver)

    async def fetch_handle(self, did: str, resolver: Resolver) -> str:
        return await self.fetch("did", did, resolver)

    async def fetch(self, kind: LookupKind, value: str, resolver: Resolver) -> str:
        """Return the counterpart of ``value``, resolving it on a miss.

        Args:
            kind: Which column ``value`` is ("handle" or "did")
            value: The handle or DID to look up
            resolver: Called on a miss to produce the counterpart

        Returns:
            The DID for a handle lookup, the handle for a DID lookup

        Raises:
            Whatever ``resolver`` raises; failures are never cached
        """
        entry = await self.peek(kind, value)
        if entry is not None:
            return getattr(entry, _COUNTERPART[kind])

        counterpart = await resolver()
        handle, did = (value, counterpart) if kind == "handle" else (counterpart, value)
        cached_at = self.clock()
        try:
            async with self._db.execute(
                "INSERT INTO handle_lookup (handle, did, cached_at) VALUES (?, ?, ?)",
                (handle, did, cached_at),
            ) as cursor:
                newest_id = cursor.lastrowid
        except aiosqlite.IntegrityError:
            LOGGER.debug("Concurrent cache insert lost", extra={"handle": handle, "did": did})
            return counterpart

        await self._evict(newest_id=newest_id, now=cached_at)
        return counterpart

    async def _evict(self, newest_id: int, now: int) -> None:
        id_cutoff = newest_id - self.max
        age_cutoff = now - int(self.ttl.total_seconds() * 1000)
        await self._db.execute(
            "DELETE FROM handle_lookup WHERE id <= ? OR cached_at < ?",
            (id_cutoff, age_cutoff),
        )


def _column(kind: LookupKind) -> str:
    if kind not in _COUNTERPART:
        raise ValueError(f"Unknown lookup kind: {kind!r}")
    return kind
