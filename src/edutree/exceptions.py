"""Custom exceptions for edutree."""


class EdutreeError(Exception):
    """Base exception for edutree operations."""


class NotFoundError(EdutreeError):
    """Referenced node or parent does not exist."""


class InvalidArgumentError(EdutreeError):
    """Malformed input, such as a level outside the tree depth."""


class InvalidStateError(EdutreeError):
    """Operation would violate a tree invariant."""


class PersistenceError(EdutreeError):
    """Error while reading or writing the backing store."""
