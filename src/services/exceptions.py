"""
Custom exceptions for the conflict engine.

Provides structured error handling with retryable flags.
"""


class ConflictEngineError(Exception):
    """Base exception for conflict engine operations."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ResolutionStoreError(ConflictEngineError):
    """
    Reading or writing a conflict resolution failed.

    Causes:
    - Database unavailable or connection dropped
    - Constraint or permission error on upsert

    The UI keeps working: reads degrade to "all pending", writes roll back.
    """

    retryable = True


class IgnoredStoreError(ConflictEngineError):
    """
    The ignored-conflict set could not be persisted.

    Callers log and continue; the conflict simply shows up again later.
    """

    retryable = True


class PreflightInputError(ConflictEngineError, ValueError):
    """
    Preflight was called without usable candidate times.

    Cannot happen through the normal save flow, so it is raised rather than
    absorbed.
    """

    retryable = False
