"""Commit events as consumed from the repository firehose."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class _RepoOp(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Record path, '<collection>/<record key>'")

    @property
    def collection(self) -> str:
        """NSID of the collection the record belongs to."""
        return self.path.split("/", 1)[0]

    @property
    def rkey(self) -> str:
        """Record key within the collection."""
        _, _, rkey = self.path.partition("/")
        return rkey

    def uri(self, repo: str) -> str:
        """Build the at:// URI of the record in ``repo``."""
        return f"at://{repo}/{self.path}"


class Create(_RepoOp):
    """A record was created; its bytes live in the commit's blocks."""

    action: Literal["create"] = "create"
    cid: str | None = Field(
        default=None,
        description="Content hash of the new record (missing ops are dropped)",
    )


class Update(_RepoOp):
    """A record was updated in place. Never processed."""

    action: Literal["update"] = "update"
    cid: str | None = None


class Delete(_RepoOp):
    """A record was deleted; no payload is carried."""

    action: Literal["delete"] = "delete"


RepoOp = Annotated[Create | Update | Delete, Field(discriminator="action")]


class CommitEvent(BaseModel):
    """An atomic batch of record operations published by one repository.

    Attributes:
        repo: DID of the repository that produced the commit
        seq: Position in the firehose; strictly increasing, used as cursor
        ops: Operations in the order the repository applied them
        blocks: CAR archive holding the records referenced by ``ops``

    Examples:
        >>> CommitEvent.model_validate({
        ...     "repo": "did:plc:alice",
        ...     "seq": 42,
        ...     "ops": [{"action": "delete", "path": "app.bsky.feed.post/3k"}],
        ... })
    """

    model_config = ConfigDict(frozen=True)

    repo: str
    seq: int
    ops: list[RepoOp] = Field(default_factory=list)
    blocks: bytes = b""
