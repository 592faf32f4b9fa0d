from .posts import IndexedPost, InMemoryPostIndex, MembershipCheck, PostIndexer

__all__ = [
    "IndexedPost",
    "InMemoryPostIndex",
    "MembershipCheck",
    "PostIndexer",
]
