"""MongoDB implementation of CheckpointStore."""

from listfeed.ingestion.checkpoint import CheckpointStore

from .collection import IndexedCollection
from .config import MongoConfiguration


class MongoCheckpointStore(CheckpointStore):
    """MongoDB-backed subscription cursor store.

    One document per service, keyed by the service name:

        {
            "_id": "wss://bsky.network",
            "cursor": 123456789
        }

    Writes use ``$max`` with upsert, which makes them idempotent and
    monotonic in a single atomic statement: replaying an older cursor
    leaves the stored one untouched.

    Example:
        >>> store = MongoCheckpointStore(MongoConfiguration(), "wss://bsky.network")
        >>> await store.set(1000)
        >>> await store.get()
        1000
    """

    def __init__(self, config: MongoConfiguration, service: str) -> None:
        super().__init__(service)
        # No indexes needed - _id is indexed by default
        self._collection = IndexedCollection(config.checkpoints)

    async def get(self) -> int | None:
        doc = await self._collection.find_one({"_id": self.service})
        if doc is None:
            return None
        return int(doc["cursor"])

    async def set(self, cursor: int) -> None:
        await self._collection.update_one(
            {"_id": self.service},
            {"$max": {"cursor": cursor}},
            upsert=True,
        )
