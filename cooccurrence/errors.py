"""
Co-occurrence error taxonomy.

Every failure the engine, the store boundary or the viewport can surface is a
subclass of CooccurrenceError so callers can catch the family in one place.
"""

from typing import Optional


class CooccurrenceError(Exception):
    """Base exception for co-occurrence compute and rendering errors."""
    pass


class AuthorizationError(CooccurrenceError):
    """Missing or invalid credentials, or the caller lacks the admin role."""
    pass


class DataFetchError(CooccurrenceError):
    """Participation facts or case metadata could not be loaded."""
    pass


class CommitError(CooccurrenceError):
    """
    Delete or batched insert failed during commit.

    batch_index is None when the delete itself failed. Rows deleted before the
    failure are not restored.
    """

    def __init__(self, message: str, batch_index: Optional[int] = None):
        super().__init__(message)
        self.batch_index = batch_index


class ComputeInProgressError(CooccurrenceError):
    """Another compute run currently holds the single-flight lock."""
    pass


class RenderInputError(CooccurrenceError):
    """Filtered graph is inconsistent (e.g. an edge references a missing node)."""
    pass
