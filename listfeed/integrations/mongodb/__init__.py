"""MongoDB integration for listfeed.

Provides MongoDB implementations of the CheckpointStore, PostIndexer and
RetentionCompactor interfaces using the async PyMongo driver.

Usage:
    >>> from listfeed.integrations.mongodb import (
    ...     MongoCheckpointStore,
    ...     MongoConfiguration,
    ...     MongoPostIndex,
    ...     MongoRetentionCompactor,
    ... )
    >>>
    >>> config = MongoConfiguration(uri="mongodb://localhost:27017", database="listfeed")
    >>> checkpoints = MongoCheckpointStore(config, "wss://bsky.network")
    >>> index = MongoPostIndex(config)
    >>> compactor = MongoRetentionCompactor(config, retain=timedelta(hours=48))
"""

from .checkpoint import MongoCheckpointStore
from .collection import IndexDirection, IndexedCollection, IndexSpec
from .config import MongoConfiguration
from .posts import MongoPostIndex
from .retention import MongoRetentionCompactor

__all__ = [
    "MongoConfiguration",
    "MongoCheckpointStore",
    "MongoPostIndex",
    "MongoRetentionCompactor",
    "IndexedCollection",
    "IndexSpec",
    "IndexDirection",
]
