"""Retention compaction of locally materialized rows."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ..clock import utc_now

if TYPE_CHECKING:
    from ..indexing.posts import InMemoryPostIndex

LOGGER = logging.getLogger(__name__)


class RetentionCompactor(ABC):
    """Deletes rows observed longer ago than the retention horizon.

    Feeds only ever serve a rolling window of recent content, so rows
    older than ``now - retain`` are removed. The cutoff is exclusive: rows
    observed exactly at the cutoff, or later, are kept.

    Attributes:
        retain: Retention horizon
        clock: Source of "now" when compact() is called without one

    Example:
        >>> compactor = MongoRetentionCompactor(config, retain=timedelta(hours=48))
        >>> removed = await compactor.compact()
    """

    def __init__(self, retain: timedelta, clock: Callable[[], datetime] = utc_now) -> None:
        if retain < timedelta():
            raise ValueError("retain must not be negative")
        self.retain = retain
        self.clock = clock

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Oldest observation time that is still retained."""
        return (now or self.clock()) - self.retain

    async def compact(self, now: datetime | None = None) -> int:
        """Delete every row observed strictly before the cutoff.

        Args:
            now: Reference time; defaults to the compactor's clock

        Returns:
            Number of rows removed
        """
        cutoff = self.cutoff(now)
        removed = await self.delete_older_than(cutoff)
        LOGGER.debug(
            "Compacted rows older than retention horizon",
            extra={"cutoff": cutoff.isoformat(), "removed": removed},
        )
        return removed

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete rows with an observation time strictly before ``cutoff``."""
        ...


class InMemoryRetentionCompactor(RetentionCompactor):
    """Compacts an InMemoryPostIndex. For testing."""

    def __init__(
        self,
        index: "InMemoryPostIndex",
        retain: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(retain, clock)
        self.index = index

    async def delete_older_than(self, cutoff: datetime) -> int:
        return await self.index.delete_indexed_before(cutoff)
