"""listfeed - firehose ingestion and identity caching for list feeds.

This module provides the public API for consuming the repository firehose
and resolving handles.
"""

from .config import ListFeedSettings
from .identity import HandleCache, IdentityResolver
from .indexing import IndexedPost, PostIndexer
from .ingestion import (
    CheckpointStore,
    CommitEvent,
    FirehoseStream,
    FirehoseSubscriber,
    OperationsByType,
    RetentionCompactor,
    operations_by_type,
)

__all__ = [
    # Configuration
    "ListFeedSettings",
    # Ingestion
    "CommitEvent",
    "FirehoseStream",
    "FirehoseSubscriber",
    "OperationsByType",
    "operations_by_type",
    "CheckpointStore",
    "RetentionCompactor",
    # Indexing
    "IndexedPost",
    "PostIndexer",
    # Identity
    "HandleCache",
    "IdentityResolver",
]
