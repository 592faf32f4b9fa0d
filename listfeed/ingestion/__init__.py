"""Firehose ingestion pipeline.

- FirehoseStream: Resumable subscription yielding CommitEvents
- operations_by_type: Decode a commit's archive and classify its ops
- CheckpointStore: Persisted resumption cursor
- RetentionCompactor: Pruning of rows past the retention horizon
- FirehoseSubscriber: Consume loop and reconnection supervisor
"""

from .checkpoint import Checkpoint, CheckpointStore, InMemoryCheckpointStore
from .classifier import (
    RECORD_TYPES,
    CreateOp,
    DeleteOp,
    Operations,
    OperationsByType,
    RecordType,
    classify,
    decode_blocks,
    decode_record,
    operations_by_type,
)
from .events import CommitEvent, Create, Delete, RepoOp, Update
from .retention import InMemoryRetentionCompactor, RetentionCompactor
from .stream import FirehoseStream, decode_frame, subscription_url
from .subscriber import CommitHandler, FirehoseSubscriber

__all__ = [
    # Events
    "CommitEvent",
    "Create",
    "Update",
    "Delete",
    "RepoOp",
    # Classification
    "RECORD_TYPES",
    "RecordType",
    "CreateOp",
    "DeleteOp",
    "Operations",
    "OperationsByType",
    "classify",
    "decode_blocks",
    "decode_record",
    "operations_by_type",
    # Checkpointing and retention
    "Checkpoint",
    "CheckpointStore",
    "InMemoryCheckpointStore",
    "RetentionCompactor",
    "InMemoryRetentionCompactor",
    # Stream and supervisor
    "FirehoseStream",
    "decode_frame",
    "subscription_url",
    "CommitHandler",
    "FirehoseSubscriber",
]
