"""Builders for synthetic commits, records and streams used across tests."""

from collections.abc import AsyncIterator, Iterable
from typing import Any

from listfeed.ingestion import CommitEvent

REPO = "did:plc:alice"
CREATED_AT = "2024-01-01T00:00:00.000Z"

POST = "app.bsky.feed.post"
REPOST = "app.bsky.feed.repost"
LIKE = "app.bsky.feed.like"
FOLLOW = "app.bsky.graph.follow"


def cid(n: int) -> str:
    """A fake, unique content hash."""
    return f"bafyreifake{n:06d}"


def post_record(text: str = "hello", reply_to: str | None = None) -> dict[str, Any]:
    record: dict[str, Any] = {"$type": POST, "text": text, "createdAt": CREATED_AT}
    if reply_to is not None:
        ref = {"uri": reply_to, "cid": cid(999)}
        record["reply"] = {"root": ref, "parent": ref}
    return record


def subject_record(nsid: str, subject_uri: str) -> dict[str, Any]:
    return {
        "$type": nsid,
        "subject": {"uri": subject_uri, "cid": cid(998)},
        "createdAt": CREATED_AT,
    }


def follow_record(subject: str) -> dict[str, Any]:
    return {"$type": FOLLOW, "subject": subject, "createdAt": CREATED_AT}


def create(collection: str, rkey: str, cid: str | None) -> dict[str, Any]:
    return {"action": "create", "path": f"{collection}/{rkey}", "cid": cid}


def update(collection: str, rkey: str, cid: str | None = None) -> dict[str, Any]:
    return {"action": "update", "path": f"{collection}/{rkey}", "cid": cid}


def delete(collection: str, rkey: str) -> dict[str, Any]:
    return {"action": "delete", "path": f"{collection}/{rkey}"}


def commit(ops: Iterable[dict[str, Any]] = (), seq: int = 1, repo: str = REPO) -> CommitEvent:
    return CommitEvent.model_validate({"repo": repo, "seq": seq, "ops": list(ops)})


def commits(seqs: Iterable[int]) -> list[CommitEvent]:
    """Commits each deleting one post, so every one classifies to something."""
    return [commit([delete(POST, f"r{seq}")], seq=seq) for seq in seqs]


async def stream_of(
    events: Iterable[CommitEvent], error: BaseException | None = None
) -> AsyncIterator[CommitEvent]:
    """Yield ``events`` then raise ``error`` (if any), like a failing firehose."""
    for event in events:
        yield event
    if error is not None:
        raise error
