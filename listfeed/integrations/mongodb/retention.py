"""MongoDB implementation of RetentionCompactor."""

from collections.abc import Callable
from datetime import datetime, timedelta

from listfeed.clock import utc_now
from listfeed.ingestion.retention import RetentionCompactor

from .collection import IndexedCollection
from .config import MongoConfiguration
from .posts import POST_INDEXES


class MongoRetentionCompactor(RetentionCompactor):
    """Deletes posts whose ``indexed_at`` is older than the horizon.

    Example:
        >>> compactor = MongoRetentionCompactor(config, retain=timedelta(hours=48))
        >>> await compactor.compact()
    """

    def __init__(
        self,
        config: MongoConfiguration,
        retain: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(retain, clock)
        self._collection = IndexedCollection(config.posts, indexes=POST_INDEXES)

    async def delete_older_than(self, cutoff: datetime) -> int:
        return await self._collection.delete_many({"indexed_at": {"$lt": cutoff}})
