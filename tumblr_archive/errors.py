from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class StorageError(RuntimeError):
    """
    Raised when reading or writing posts in SQLite fails.

    When the rollback that followed the failure also failed, the rollback error is kept
    on ``rollback_error`` instead of replacing the original cause.
    """

    def __init__(self, message: str, *, rollback_error: BaseException | None = None) -> None:
        super().__init__(message)
        self.rollback_error = rollback_error


class InvariantViolation(RuntimeError):
    """Raised when stored or supplied data is in a state the mapper can never produce."""

    rollback_error: BaseException | None = None


class PostFormatError(ValueError):
    """Raised when a JSON post record does not match the post data model."""
