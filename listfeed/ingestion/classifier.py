"""Block decoding and per-record-type classification of commit operations.

A commit carries its new records inside a CAR archive keyed by content
hash. This module reads that archive, validates each created record against
the lexicon model of its collection and groups the surviving operations by
record type:

- RecordType: Registry entry binding a collection NSID to its record model
- CreateOp / DeleteOp: Classified operations handed to the indexer
- OperationsByType: Result of classifying one commit
- operations_by_type: Decode and classify a CommitEvent
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from atproto import CAR, models
from pydantic import BaseModel, ValidationError

from ..exceptions import RecordDecodeError
from .events import CommitEvent, Create, Delete, RepoOp

LOGGER = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


@dataclass(frozen=True)
class RecordType:
    """A record type the classifier understands.

    Attributes:
        name: Key under which operations are grouped (e.g. "posts")
        collection: Collection NSID found as the first segment of op paths
        model: Lexicon model the decoded record must validate against
    """

    name: str
    collection: str
    model: type[BaseModel]


RECORD_TYPES: tuple[RecordType, ...] = (
    RecordType("posts", models.ids.AppBskyFeedPost, models.AppBskyFeedPost.Record),
    RecordType("reposts", models.ids.AppBskyFeedRepost, models.AppBskyFeedRepost.Record),
    RecordType("likes", models.ids.AppBskyFeedLike, models.AppBskyFeedLike.Record),
    RecordType("follows", models.ids.AppBskyGraphFollow, models.AppBskyGraphFollow.Record),
)


@dataclass(frozen=True)
class CreateOp(Generic[R]):
    uri: str
    cid: str
    author: str
    record: R


@dataclass(frozen=True)
class DeleteOp:
    uri: str


@dataclass
class Operations(Generic[R]):
    """Creates and deletes of one record type, each in commit order."""

    creates: list[CreateOp[R]] = field(default_factory=list)
    deletes: list[DeleteOp] = field(default_factory=list)


class OperationsByType:
    """Classified operations of a commit, grouped by record type name.

    Supports both mapping access (``ops["posts"]``) and attribute access
    for the built-in record types (``ops.posts``).
    """

    def __init__(self, record_types: Iterable[RecordType] = RECORD_TYPES) -> None:
        self._operations: dict[str, Operations[Any]] = {
            record_type.name: Operations() for record_type in record_types
        }

    def __getitem__(self, name: str) -> Operations[Any]:
        return self._operations[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)

    def items(self) -> Iterator[tuple[str, Operations[Any]]]:
        return iter(self._operations.items())

    @property
    def posts(self) -> Operations[models.AppBskyFeedPost.Record]:
        return self._operations["posts"]

    @property
    def reposts(self) -> Operations[models.AppBskyFeedRepost.Record]:
        return self._operations["reposts"]

    @property
    def likes(self) -> Operations[models.AppBskyFeedLike.Record]:
        return self._operations["likes"]

    @property
    def follows(self) -> Operations[models.AppBskyGraphFollow.Record]:
        return self._operations["follows"]

    def is_empty(self) -> bool:
        return not any(ops.creates or ops.deletes for ops in self._operations.values())


def decode_blocks(blocks: bytes) -> dict[str, Any]:
    """Read a commit's CAR archive into a mapping of CID string to block.

    Args:
        blocks: Raw CAR bytes from the commit

    Returns:
        Decoded blocks keyed by the string form of their CID. An empty
        archive yields an empty mapping.

    Raises:
        RecordDecodeError: If the archive cannot be parsed
    """
    if not blocks:
        return {}
    try:
        car = CAR.from_bytes(blocks)
    except Exception as err:
        raise RecordDecodeError("Unreadable commit archive") from err
    return {str(cid): block for cid, block in car.blocks.items()}


def decode_record(record_type: RecordType, block: Any) -> BaseModel:
    """Validate a decoded block against the record type's lexicon model.

    Raises:
        RecordDecodeError: If the block does not match the schema
    """
    try:
        return record_type.model.model_validate(block)
    except ValidationError as err:
        raise RecordDecodeError(f"Record is not a valid {record_type.collection}") from err


def _decode_create(
    op: Create, blocks: Mapping[str, Any], record_type: RecordType
) -> BaseModel:
    if op.cid is None:
        raise RecordDecodeError("Create operation has no cid")
    block = blocks.get(op.cid)
    if block is None:
        raise RecordDecodeError(f"Block {op.cid} missing from commit archive")
    return decode_record(record_type, block)


def classify(
    repo: str,
    ops: Iterable[RepoOp],
    blocks: Mapping[str, Any],
    record_types: Iterable[RecordType] = RECORD_TYPES,
) -> OperationsByType:
    """Group a commit's operations by record type.

    Updates are ignored, as are operations on collections outside
    ``record_types``. A create whose record cannot be decoded or validated
    is dropped on its own; the remaining operations are unaffected.

    Args:
        repo: DID of the committing repository (author of every create)
        ops: Operations in commit order
        blocks: Decoded archive, as returned by decode_blocks()
        record_types: Registry of supported record types

    Returns:
        Classified operations; order within each list follows ``ops``.
    """
    record_types = tuple(record_types)
    by_collection = {record_type.collection: record_type for record_type in record_types}
    result = OperationsByType(record_types)

    for op in ops:
        record_type = by_collection.get(op.collection)
        if record_type is None:
            continue

        uri = op.uri(repo)
        if isinstance(op, Delete):
            result[record_type.name].deletes.append(DeleteOp(uri=uri))
        elif isinstance(op, Create):
            try:
                record = _decode_create(op, blocks, record_type)
            except RecordDecodeError as err:
                LOGGER.debug("Dropped create operation", extra={"uri": uri, "reason": str(err)})
                continue
            result[record_type.name].creates.append(
                CreateOp(uri=uri, cid=op.cid, author=repo, record=record)
            )
        # updates not supported

    return result


def operations_by_type(
    commit: CommitEvent, record_types: Iterable[RecordType] = RECORD_TYPES
) -> OperationsByType:
    """Decode a commit's archive and classify its operations.

    If the archive itself is unreadable every create in the commit is
    dropped, but deletes are still classified.

    Example:
        >>> ops = operations_by_type(commit)
        >>> for create in ops.posts.creates:
        ...     print(create.uri, create.record.text)
    """
    blocks: dict[str, Any] = {}
    if any(isinstance(op, Create) for op in commit.ops):
        try:
            blocks = decode_blocks(commit.blocks)
        except RecordDecodeError:
            LOGGER.warning(
                "Could not read commit archive; dropping its creates",
                extra={"repo": commit.repo, "seq": commit.seq},
                exc_info=True,
            )
    return classify(commit.repo, commit.ops, blocks, record_types)
