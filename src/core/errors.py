"""
Typed failures raised by the store, index, cache and collaborator clients.
Lookups and deletes of unknown ids are never errors; they return empty results.
"""


class StoreError(Exception):
    """Base class for record store failures."""
    pass


class StorageUnavailableError(StoreError):
    """The storage engine could not be opened or used."""
    pass


class MigrationError(StoreError):
    """A schema migration step failed; the open attempt was rolled back."""

    def __init__(self, version: int, description: str, cause: Exception = None):
        self.version = version
        self.description = description
        self.cause = cause
        super().__init__(f"Migration to version {version} ({description}) failed: {cause}")


class MalformedRecordError(StoreError, ValueError):
    """A record failed required-field validation at the store boundary."""

    def __init__(self, collection: str, errors: list):
        self.collection = collection
        self.errors = errors
        super().__init__(f"Malformed {collection} record: {errors}")


class UnknownIndexError(StoreError, ValueError):
    """Query against an index the corpus collection does not define."""
    pass


class DraftingResponseError(Exception):
    """The drafting service returned output that could not be parsed."""
    pass


class FeedError(Exception):
    """A corpus feed could not fetch or parse its source."""
    pass
