"""Checkpoint store for resuming the firehose after crashes or restarts."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Checkpoint:
    """Last acknowledged firehose position for a service.

    Attributes:
        service: Firehose endpoint the cursor belongs to
        cursor: Sequence number of the last checkpointed commit
    """

    service: str
    cursor: int


class CheckpointStore(ABC):
    """Abstract interface for persisting the subscription cursor.

    A store is bound to one service (the firehose endpoint). The cursor is
    only read when a subscription is opened, and written by the subscriber
    every few processed events. Implementations must make writes:
    - Idempotent (writing the same cursor twice is harmless)
    - Monotonic (a lower cursor never replaces a higher one)
    - Durable (the cursor survives process restarts)
    """

    def __init__(self, service: str) -> None:
        self.service = service

    @abstractmethod
    async def get(self) -> int | None:
        """Load the last persisted cursor.

        Returns:
            The cursor, or None if the service was never checkpointed
        """
        ...

    @abstractmethod
    async def set(self, cursor: int) -> None:
        """Upsert the cursor for the service.

        Args:
            cursor: Sequence number of the last processed commit
        """
        ...


class InMemoryCheckpointStore(CheckpointStore):
    """In-memory checkpoint storage for testing.

    Several stores may share one ``checkpoints`` dictionary to simulate a
    common table keyed by service. Not suitable for production use as
    checkpoints are lost on restart.
    """

    def __init__(self, service: str, checkpoints: dict[str, Checkpoint] | None = None) -> None:
        super().__init__(service)
        self.checkpoints = checkpoints if checkpoints is not None else {}

    async def get(self) -> int | None:
        checkpoint = self.checkpoints.get(self.service)
        return checkpoint.cursor if checkpoint is not None else None

    async def set(self, cursor: int) -> None:
        current = self.checkpoints.get(self.service)
        if current is not None and current.cursor >= cursor:
            return
        self.checkpoints[self.service] = Checkpoint(service=self.service, cursor=cursor)
