"""Firehose stream client.

FirehoseStream opens a ``com.atproto.sync.subscribeRepos`` websocket and
yields the commit events it carries, one at a time, to a single consumer.
A stream is ephemeral: once it fails or ends, a new one is opened from the
last checkpoint by the subscriber.
"""

import logging
from collections.abc import AsyncGenerator, Callable
from typing import Any
from urllib.parse import urlencode

from atproto import firehose_models, models, parse_subscribe_repos_message
from pydantic import ValidationError
from websockets.asyncio.client import connect as websocket_connect

from ..exceptions import MessageValidationError, StreamError
from .events import CommitEvent

LOGGER = logging.getLogger(__name__)

SUBSCRIBE_REPOS_PATH = "/xrpc/com.atproto.sync.subscribeRepos"

FrameDecoder = Callable[[bytes], CommitEvent | None]


def subscription_url(service: str, cursor: int | None = None) -> str:
    """Build the subscribeRepos URL for ``service``.

    Example:
        >>> subscription_url("wss://bsky.network", 42)
        'wss://bsky.network/xrpc/com.atproto.sync.subscribeRepos?cursor=42'
    """
    url = service.rstrip("/") + SUBSCRIBE_REPOS_PATH
    if cursor is not None:
        url += "?" + urlencode({"cursor": cursor})
    return url


def _commit_event(commit: models.ComAtprotoSyncSubscribeRepos.Commit) -> CommitEvent:
    return CommitEvent.model_validate(
        {
            "repo": commit.repo,
            "seq": commit.seq,
            "ops": [
                {
                    "action": op.action,
                    "path": op.path,
                    "cid": str(op.cid) if op.cid is not None else None,
                }
                for op in commit.ops
            ],
            "blocks": commit.blocks or b"",
        }
    )


def decode_frame(data: bytes) -> CommitEvent | None:
    """Decode one binary firehose frame.

    Args:
        data: Raw websocket message

    Returns:
        The commit carried by the frame, or None for other message types
        (identity, account, info, ...)

    Raises:
        StreamError: If the remote sent an error frame
        MessageValidationError: If the frame is structurally invalid
    """
    try:
        frame = firehose_models.Frame.from_bytes(data)
    except Exception as err:
        raise MessageValidationError("Undecodable firehose frame") from err

    if isinstance(frame, firehose_models.ErrorFrame):
        raise StreamError(f"Firehose error frame: {frame.body.error}: {frame.body.message}")

    try:
        message = parse_subscribe_repos_message(frame)
    except Exception as err:
        raise MessageValidationError("Invalid subscribeRepos message") from err

    if not isinstance(message, models.ComAtprotoSyncSubscribeRepos.Commit):
        return None

    try:
        return _commit_event(message)
    except ValidationError as err:
        raise MessageValidationError(f"Invalid commit at seq {message.seq}") from err


class FirehoseStream:
    """Single-use async iterator over the commits of a firehose subscription.

    Attributes:
        service: Base websocket URL of the firehose (e.g. wss://bsky.network)
        cursor: Sequence number to resume from; None starts wherever the
            remote service begins when no cursor is given

    Example:
        >>> stream = FirehoseStream("wss://bsky.network", cursor=await checkpoints.get())
        >>> async for commit in stream:
        ...     print(commit.seq, commit.repo)

    Note:
        Invalid messages are logged and skipped. Error frames and transport
        failures end the iteration with an exception; the caller reconnects
        by creating a new FirehoseStream.
    """

    def __init__(
        self,
        service: str,
        cursor: int | None = None,
        *,
        connect: Callable[..., Any] = websocket_connect,
        decode: FrameDecoder = decode_frame,
    ) -> None:
        self.service = service
        self.cursor = cursor
        self._connect = connect
        self._decode = decode
        self._iterator: AsyncGenerator[CommitEvent, None] | None = None

    @property
    def url(self) -> str:
        return subscription_url(self.service, self.cursor)

    def __aiter__(self) -> AsyncGenerator[CommitEvent, None]:
        if self._iterator is not None:
            raise RuntimeError("FirehoseStream can only be iterated once")
        self._iterator = self._commits()
        return self._iterator

    async def aclose(self) -> None:
        """Close the subscription if it was opened."""
        if self._iterator is not None:
            await self._iterator.aclose()

    async def _commits(self) -> AsyncGenerator[CommitEvent, None]:
        LOGGER.info("Opening firehose subscription", extra={"url": self.url})
        async with self._connect(self.url, max_size=None) as websocket:
            async for data in websocket:
                if isinstance(data, str):
                    LOGGER.warning("Skipped non-binary firehose message")
                    continue
                try:
                    commit = self._decode(data)
                except MessageValidationError:
                    LOGGER.warning("Repo subscription skipped invalid message", exc_info=True)
                    continue
                if commit is not None:
                    yield commit
        raise StreamError("Firehose subscription closed by remote")
