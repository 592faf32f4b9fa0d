"""Tests for block decoding and operation classification."""

import pytest

from listfeed.exceptions import RecordDecodeError
from listfeed.ingestion import RECORD_TYPES, classify, decode_blocks, decode_record
from listfeed.ingestion import classifier as classifier_module
from listfeed.ingestion import operations_by_type
from tests.fixtures.listfeed_app import (
    FOLLOW,
    LIKE,
    POST,
    REPO,
    REPOST,
    cid,
    commit,
    create,
    delete,
    follow_record,
    post_record,
    subject_record,
    update,
)
from tests.fixtures.listfeed_app.wire import Archive, cid_str, image_post_record

POST_URI = f"at://did:plc:bob/{POST}/target"


def uri(collection, rkey):
    return f"at://{REPO}/{collection}/{rkey}"


def uris(ops):
    return [op.uri for op in ops]


# Scenarios


def test_creates_then_delete_of_one():
    """Three post creates and a delete of the second keep both lists in order."""
    blocks = {cid(1): post_record("one"), cid(2): post_record("two"), cid(3): post_record("three")}
    event = commit(
        [
            create(POST, "u1", cid(1)),
            create(POST, "u2", cid(2)),
            create(POST, "u3", cid(3)),
            delete(POST, "u2"),
        ]
    )

    result = classify(event.repo, event.ops, blocks)

    assert uris(result.posts.creates) == [uri(POST, "u1"), uri(POST, "u2"), uri(POST, "u3")]
    assert uris(result.posts.deletes) == [uri(POST, "u2")]


def test_counts_match_valid_supported_ops_per_type():
    """Only valid creates and deletes of supported types are emitted."""
    blocks = {
        cid(1): post_record(),
        cid(2): subject_record(REPOST, POST_URI),
        cid(3): subject_record(LIKE, POST_URI),
        cid(4): follow_record("did:plc:bob"),
        cid(5): {"$type": POST, "createdAt": "2024-01-01T00:00:00.000Z"},  # no text
    }
    event = commit(
        [
            create(POST, "p1", cid(1)),
            create(REPOST, "r1", cid(2)),
            create(LIKE, "l1", cid(3)),
            create(LIKE, "l2", cid(3)),
            create(FOLLOW, "f1", cid(4)),
            create(POST, "bad", cid(5)),
            update(POST, "p1", cid(1)),
            delete(LIKE, "l0"),
            delete(FOLLOW, "f0"),
        ]
    )

    result = classify(event.repo, event.ops, blocks)

    counts = {name: (len(ops.creates), len(ops.deletes)) for name, ops in result.items()}
    assert counts == {
        "posts": (1, 0),
        "reposts": (1, 0),
        "likes": (2, 1),
        "follows": (1, 1),
    }


# Creates


def test_create_carries_uri_cid_author_and_record():
    """A create is emitted with its typed record and the repo as author."""
    event = commit([create(POST, "p1", cid(1))])

    result = classify(event.repo, event.ops, {cid(1): post_record("hi there")})

    [op] = result.posts.creates
    assert op.uri == uri(POST, "p1")
    assert op.cid == cid(1)
    assert op.author == REPO
    assert op.record.text == "hi there"


def test_follow_record_is_typed():
    """Follow records expose their subject DID."""
    event = commit([create(FOLLOW, "f1", cid(1))])

    result = classify(event.repo, event.ops, {cid(1): follow_record("did:plc:bob")})

    assert result.follows.creates[0].record.subject == "did:plc:bob"


def test_create_without_cid_is_dropped():
    """A create with no cid is skipped; later ops still apply."""
    event = commit([create(POST, "p1", None), create(POST, "p2", cid(2))])

    result = classify(event.repo, event.ops, {cid(2): post_record()})

    assert uris(result.posts.creates) == [uri(POST, "p2")]


def test_create_with_missing_block_is_dropped():
    """A create whose block is absent from the archive is skipped."""
    event = commit([create(POST, "p1", cid(1)), delete(POST, "p0")])

    result = classify(event.repo, event.ops, {})

    assert result.posts.creates == []
    assert uris(result.posts.deletes) == [uri(POST, "p0")]


def test_record_of_wrong_type_is_dropped():
    """A like stored under the post collection fails post validation."""
    event = commit([create(POST, "p1", cid(1))])

    result = classify(event.repo, event.ops, {cid(1): subject_record(LIKE, POST_URI)})

    assert result.posts.creates == []
    assert result.likes.creates == []


def test_updates_are_ignored():
    """Update actions never produce operations."""
    event = commit([update(POST, "p1", cid(1))])

    result = classify(event.repo, event.ops, {cid(1): post_record()})

    assert result.is_empty()


def test_unknown_collections_are_ignored():
    """Operations on unsupported collections are skipped."""
    event = commit(
        [create("app.bsky.graph.block", "b1", cid(1)), delete("app.bsky.actor.profile", "self")]
    )

    result = classify(event.repo, event.ops, {cid(1): {"$type": "app.bsky.graph.block"}})

    assert result.is_empty()


def test_mapping_access_matches_attributes():
    """Operations are reachable by name as well as by attribute."""
    result = classify(REPO, [], {})

    assert list(result) == ["posts", "reposts", "likes", "follows"]
    assert result["likes"] is result.likes


def test_custom_record_types():
    """The registry can be narrowed to a subset of record types."""
    event = commit([delete(POST, "p1"), delete(LIKE, "l1")])
    likes_only = [record_type for record_type in RECORD_TYPES if record_type.name == "likes"]

    result = classify(event.repo, event.ops, {}, likes_only)

    assert list(result) == ["likes"]
    assert uris(result["likes"].deletes) == [uri(LIKE, "l1")]


# Decoding


def test_decode_record_rejects_invalid_block():
    """decode_record raises RecordDecodeError for schema mismatches."""
    posts = RECORD_TYPES[0]
    with pytest.raises(RecordDecodeError):
        decode_record(posts, {"$type": POST})


def test_decode_blocks_empty_archive():
    """An empty archive decodes to no blocks."""
    assert decode_blocks(b"") == {}


def test_decode_blocks_rejects_garbage():
    """Unparseable archives raise RecordDecodeError."""
    with pytest.raises(RecordDecodeError):
        decode_blocks(b"\xff\x00definitely not a car file")


def test_operations_by_type_decodes_blocks(monkeypatch):
    """operations_by_type classifies against the decoded archive."""
    monkeypatch.setattr(classifier_module, "decode_blocks", lambda blocks: {cid(1): post_record()})
    event = commit([create(POST, "p1", cid(1))])

    result = operations_by_type(event)

    assert uris(result.posts.creates) == [uri(POST, "p1")]


def test_operations_by_type_reads_real_archive():
    """Creates are matched to blocks of an encoded archive by CID."""
    archive = Archive()
    plain = archive.add(post_record("plain"))
    with_image = archive.add(image_post_record("look"))
    reply = archive.add(post_record("reply", reply_to=POST_URI))
    liked = archive.add(subject_record(LIKE, POST_URI))
    event = commit(
        [
            create(POST, "p1", cid_str(plain)),
            create(POST, "p2", cid_str(with_image)),
            create(POST, "p3", cid_str(reply)),
            create(LIKE, "l1", cid_str(liked)),
            create(POST, "p4", cid(404)),
            delete(POST, "p0"),
        ]
    ).model_copy(update={"blocks": archive.to_bytes()})

    result = operations_by_type(event)

    assert uris(result.posts.creates) == [uri(POST, "p1"), uri(POST, "p2"), uri(POST, "p3")]
    assert [op.cid for op in result.posts.creates] == [
        cid_str(plain),
        cid_str(with_image),
        cid_str(reply),
    ]
    image = result.posts.creates[1].record.embed.images[0].image
    assert image.mime_type == "image/jpeg"
    assert result.posts.creates[2].record.reply.parent.uri == POST_URI
    assert uris(result.likes.creates) == [uri(LIKE, "l1")]
    assert uris(result.posts.deletes) == [uri(POST, "p0")]


def test_decode_blocks_keys_blocks_by_cid_string():
    """Decoded blocks are keyed by the same string form ops carry."""
    archive = Archive()
    record_cid = archive.add(post_record("hi"))

    blocks = decode_blocks(archive.to_bytes())

    assert blocks[cid_str(record_cid)]["text"] == "hi"
    assert cid_str(archive.root) in blocks


def test_unreadable_archive_drops_creates_but_keeps_deletes():
    """A corrupt archive only costs the commit its creates."""
    event = commit([create(POST, "p1", cid(1)), delete(POST, "p0")]).model_copy(
        update={"blocks": b"\xff\x00definitely not a car file"}
    )

    result = operations_by_type(event)

    assert result.posts.creates == []
    assert uris(result.posts.deletes) == [uri(POST, "p0")]


def test_classification_is_deterministic():
    """Classifying the same input twice yields the same operations."""
    blocks = {cid(1): post_record()}
    event = commit([create(POST, "p1", cid(1)), delete(LIKE, "l1")])

    first = classify(event.repo, event.ops, blocks)
    second = classify(event.repo, event.ops, blocks)

    assert [(name, ops) for name, ops in first.items()] == [
        (name, ops) for name, ops in second.items()
    ]
