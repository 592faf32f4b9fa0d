"""MongoDB implementation of the post index."""

from collections.abc import Callable
from datetime import datetime

from listfeed.clock import utc_now
from listfeed.indexing.posts import IndexedPost, MembershipCheck, PostIndexer

from .collection import IndexDirection, IndexedCollection, IndexSpec
from .config import MongoConfiguration

POST_INDEXES = [
    IndexSpec(keys=[("uri", IndexDirection.ASC)], unique=True),
    IndexSpec(keys=[("author", IndexDirection.ASC)]),
    IndexSpec(keys=[("indexed_at", IndexDirection.ASC)]),
]


class MongoPostIndex(PostIndexer):
    """MongoDB-backed post index.

    Document schema:
        {
            "_id": ObjectId(),
            "uri": "at://did:plc:.../app.bsky.feed.post/...",
            "cid": "bafyrei...",
            "author": "did:plc:...",
            "reply_parent": "at://..." | null,
            "reply_root": "at://..." | null,
            "indexed_at": ISODate(...)
        }

    Posts are upserted by ``uri`` so replayed commits overwrite rather
    than duplicate.
    """

    def __init__(
        self,
        config: MongoConfiguration,
        is_member: MembershipCheck | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(is_member=is_member, clock=clock)
        self._collection = IndexedCollection(config.posts, indexes=POST_INDEXES)

    async def save_posts(self, posts: list[IndexedPost]) -> None:
        await self._collection.upsert_many("uri", [post.model_dump() for post in posts])

    async def delete_posts(self, uris: list[str]) -> None:
        await self._collection.delete_many({"uri": {"$in": uris}})

    async def find_post(self, uri: str) -> IndexedPost | None:
        doc = await self._collection.find_one({"uri": uri}, projection={"_id": 0})
        return IndexedPost.model_validate(doc) if doc is not None else None
