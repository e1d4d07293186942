"""Domain errors raised by the content store and mapped to HTTP by main.py."""

from __future__ import annotations


class FolioError(Exception):
    """Base class for all domain errors."""


class NotFound(FolioError):
    """A referenced post, tag, user or title does not exist."""


class AlreadyExists(FolioError):
    """A unique name (post title, username) is already taken."""


class Unauthorized(FolioError):
    """The caller lacks the identity or role an operation requires."""


class ValidationError(FolioError):
    """Input was rejected before touching storage (empty field, bad date, bad image)."""


class StorageError(FolioError):
    """A storage-level failure, tagged with the step that failed."""

    def __init__(self, step: str, cause: BaseException | None = None) -> None:
        self.step = step
        self.cause = cause
        message = f"{step} failed" if cause is None else f"{step} failed: {cause}"
        super().__init__(message)


class AuthenticationRequired(Unauthorized):
    """The operation needs a signed-in caller and there is none."""
