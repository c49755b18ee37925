"""Typed failures raised by the storage layer."""


class PersistenceError(RuntimeError):
    """Base class for remote store failures."""


class PersistenceReadError(PersistenceError):
    """A read against the remote store failed."""


class PersistenceWriteError(PersistenceError):
    """A write against the remote store failed."""


class MalformedDocumentError(PersistenceReadError):
    """A stored document does not match the expected schema or entity invariants."""
