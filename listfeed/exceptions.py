"""Exceptions raised by the ingestion pipeline and identity resolution."""


class StreamError(Exception):
    """Raised when the firehose subscription fails and must be reopened.

    Covers error frames sent by the remote service as well as transport
    failures surfaced while reading the websocket. The subscriber treats it
    as transient and reconnects from the last checkpoint.
    """

    pass


class MessageValidationError(Exception):
    """Raised when a single firehose frame fails structural validation.

    The offending message is skipped; the subscription continues.
    """

    pass


class RecordDecodeError(Exception):
    """Raised when a create operation's record cannot be decoded.

    Either the block is missing from the commit archive, the archive itself
    is unreadable, or the record does not match its collection's schema.
    Only the affected operation is dropped.
    """

    pass


class InvalidHandleError(Exception):
    """Raised when a handle cannot be resolved to a DID."""

    pass
