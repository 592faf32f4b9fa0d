"""Firehose consume loop and reconnection supervisor."""

import asyncio
import logging
from contextlib import aclosing, nullcontext
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable
from datetime import timedelta

from .checkpoint import CheckpointStore
from .classifier import RECORD_TYPES, OperationsByType, RecordType, operations_by_type
from .events import CommitEvent
from .retention import RetentionCompactor
from .stream import FirehoseStream

LOGGER = logging.getLogger(__name__)

CommitHandler = Callable[[OperationsByType], Awaitable[None]]
StreamFactory = Callable[[str, int | None], AsyncIterable[CommitEvent]]


class FirehoseSubscriber:
    """Runtime engine that keeps a firehose subscription alive.

    FirehoseSubscriber drives the ingestion pipeline by:
    1. Opening a stream from the last persisted checkpoint
    2. Classifying each commit and handing it to the handler, strictly in
       stream order, one commit at a time
    3. Checkpointing the cursor and compacting old rows every
       ``checkpoint_interval`` successfully handled commits
    4. Reopening a fresh stream after any failure

    **Failure isolation:**
    A handler failure is logged and the loop moves on; the commit is not
    retried on its own but will be redelivered if a restart resumes from an
    earlier checkpoint. Handlers must therefore be idempotent.

    **Reconnection:**
    Retries are unbounded. By default every retry waits ``reconnect_delay``.
    When ``max_reconnect_delay`` is set the delay doubles on each
    consecutive failed connection, up to that cap, and resets once a
    commit has been handled.

    Attributes:
        service: Firehose endpoint; also the checkpoint key
        handler: Async callable persisting one classified commit
        checkpoints: Store for the resumption cursor
        compactor: Retention compactor run after each checkpoint
        reconnect_delay: Wait before reopening a failed stream
        max_reconnect_delay: Cap for exponential backoff (None = constant)
        checkpoint_interval: Handled commits between checkpoints (must be > 0)

    Example:
        >>> subscriber = FirehoseSubscriber(
        ...     service="wss://bsky.network",
        ...     handler=MongoPostIndex(config),
        ...     checkpoints=MongoCheckpointStore(config, "wss://bsky.network"),
        ...     compactor=MongoRetentionCompactor(config, timedelta(hours=48)),
        ... )
        >>> await subscriber.run()  # Runs until the task is cancelled
    """

    def __init__(
        self,
        service: str,
        handler: CommitHandler,
        checkpoints: CheckpointStore,
        compactor: RetentionCompactor,
        *,
        reconnect_delay: timedelta = timedelta(seconds=3),
        max_reconnect_delay: timedelta | None = None,
        checkpoint_interval: int = 20,
        record_types: Iterable[RecordType] = RECORD_TYPES,
        stream_factory: StreamFactory = FirehoseStream,
    ) -> None:
        """Initialize the subscriber with its collaborators.

        Raises:
            ValueError: If checkpoint_interval <= 0, or if
                max_reconnect_delay is shorter than reconnect_delay
        """
        if checkpoint_interval <= 0:
            raise ValueError("checkpoint_interval must be positive")
        if max_reconnect_delay is not None and max_reconnect_delay < reconnect_delay:
            raise ValueError("max_reconnect_delay must not be shorter than reconnect_delay")
        self.service = service
        self.handler = handler
        self.checkpoints = checkpoints
        self.compactor = compactor
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self.checkpoint_interval = checkpoint_interval
        self.record_types = tuple(record_types)
        self.stream_factory = stream_factory
        self._failures = 0

    async def handle_commit(self, commit: CommitEvent) -> bool:
        """Classify a commit and pass it to the handler.

        Returns:
            True if the handler completed, False if it raised
        """
        try:
            await self.handler(operations_by_type(commit, self.record_types))
        except Exception:
            LOGGER.exception(
                "Repo subscription could not handle message",
                extra={"repo": commit.repo, "seq": commit.seq},
            )
            return False
        return True

    async def checkpoint(self, cursor: int) -> None:
        """Persist the cursor, then prune rows past the retention horizon.

        Checkpoint failures propagate (the stream is restarted); compaction
        failures are logged and only defer pruning to the next checkpoint.
        """
        await self.checkpoints.set(cursor)
        LOGGER.debug("Stored subscription cursor", extra={"cursor": cursor})
        try:
            await self.compactor.compact()
        except Exception:
            LOGGER.exception("Retention compaction failed")

    async def consume(self, stream: AsyncIterable[CommitEvent]) -> None:
        """Process commits from one stream until it fails or ends.

        Raises:
            Any exception raised by the stream or the checkpoint store
        """
        handled = 0
        # the connection is released as soon as consumption stops
        closing = aclosing(stream) if hasattr(stream, "aclose") else nullcontext(stream)
        async with closing:
            async for commit in stream:
                if not await self.handle_commit(commit):
                    continue
                self._failures = 0
                handled += 1
                if handled % self.checkpoint_interval == 0:
                    await self.checkpoint(commit.seq)

    def next_delay(self) -> timedelta:
        """Delay before the next reconnect attempt."""
        if self.max_reconnect_delay is None or self._failures <= 1:
            return self.reconnect_delay
        # exponent is bounded so the timedelta cannot overflow
        delay = self.reconnect_delay * (2 ** min(self._failures - 1, 32))
        return min(delay, self.max_reconnect_delay)

    async def run_once(self) -> None:
        """Open a stream from the last checkpoint and consume it."""
        cursor = await self.checkpoints.get()
        LOGGER.info(
            "Starting repo subscription",
            extra={"service": self.service, "cursor": cursor},
        )
        await self.consume(self.stream_factory(self.service, cursor))

    async def run(self) -> None:
        """Run the subscription forever, reconnecting after every failure.

        Only cancellation of the surrounding task (or another BaseException)
        stops the loop.
        """
        while True:
            try:
                await self.run_once()
            except Exception:
                LOGGER.exception("Repo subscription errored", extra={"service": self.service})
            self._failures += 1
            delay = self.next_delay()
            LOGGER.warning(
                "Reconnecting repo subscription",
                extra={"service": self.service, "delay_seconds": delay.total_seconds()},
            )
            await asyncio.sleep(delay.total_seconds())
