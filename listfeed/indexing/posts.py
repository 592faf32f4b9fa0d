"""Post index: the default handler that materializes classified commits.

Only posts are persisted; they are the rows list feeds are served from and
the rows the retention compactor prunes. Replayed commits are harmless
because posts are upserted by URI.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import datetime

from atproto import models
from pydantic import BaseModel, Field

from ..clock import utc_now
from ..ingestion.classifier import CreateOp, OperationsByType

MembershipCheck = Callable[[str], Awaitable[bool]]


class IndexedPost(BaseModel):
    """A post as stored in the local index.

    Attributes:
        uri: at:// URI of the post (unique key)
        cid: Content hash of the post record
        author: DID of the posting repository
        reply_parent: URI of the post being replied to, if any
        reply_root: URI of the thread root, if any
        indexed_at: When the post was observed on the firehose (UTC)
    """

    uri: str
    cid: str
    author: str
    reply_parent: str | None = None
    reply_root: str | None = None
    indexed_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_create(
        cls, op: CreateOp[models.AppBskyFeedPost.Record], indexed_at: datetime
    ) -> "IndexedPost":
        reply = op.record.reply
        return cls(
            uri=op.uri,
            cid=op.cid,
            author=op.author,
            reply_parent=reply.parent.uri if reply else None,
            reply_root=reply.root.uri if reply else None,
            indexed_at=indexed_at,
        )


class PostIndexer(ABC):
    """Commit handler that writes post creates and deletes to storage.

    Instances are callables accepting one OperationsByType, which is the
    handler contract expected by FirehoseSubscriber.

    Attributes:
        is_member: Optional async predicate; when given, only posts whose
            author it accepts are indexed. Deletes are always applied.
        clock: Source of the ``indexed_at`` timestamp

    Example:
        >>> async def is_member(did: str) -> bool:
        ...     return did in list_members
        >>> indexer = MongoPostIndex(config, is_member=is_member)
        >>> subscriber = FirehoseSubscriber(service, indexer, checkpoints, compactor)
    """

    def __init__(
        self,
        is_member: MembershipCheck | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.is_member = is_member
        self.clock = clock

    async def __call__(self, ops: OperationsByType) -> None:
        indexed_at = self.clock()
        posts = [
            IndexedPost.from_create(op, indexed_at)
            for op in ops.posts.creates
            if self.is_member is None or await self.is_member(op.author)
        ]
        if posts:
            await self.save_posts(posts)

        deleted = [op.uri for op in ops.posts.deletes]
        if deleted:
            await self.delete_posts(deleted)

    @abstractmethod
    async def save_posts(self, posts: list[IndexedPost]) -> None:
        """Upsert posts by URI."""
        ...

    @abstractmethod
    async def delete_posts(self, uris: list[str]) -> None:
        """Delete posts by URI; unknown URIs are ignored."""
        ...


class InMemoryPostIndex(PostIndexer):
    """Dictionary-backed post index for testing."""

    def __init__(
        self,
        is_member: MembershipCheck | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(is_member=is_member, clock=clock)
        self.posts: dict[str, IndexedPost] = {}

    async def save_posts(self, posts: list[IndexedPost]) -> None:
        for post in posts:
            self.posts[post.uri] = post

    async def delete_posts(self, uris: list[str]) -> None:
        for uri in uris:
            self.posts.pop(uri, None)

    async def delete_indexed_before(self, cutoff: datetime) -> int:
        """Remove posts indexed strictly before ``cutoff``."""
        expired = [uri for uri, post in self.posts.items() if post.indexed_at < cutoff]
        for uri in expired:
            del self.posts[uri]
        return len(expired)
