"""Error taxonomy shared by every engine component."""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for content versioning failures."""


class NotFoundError(EngineError, LookupError):
    """A referenced key, locale, version or item does not exist."""


class ValidationError(EngineError, ValueError):
    """Input is missing a required value or has the wrong shape."""


class InvalidTransitionError(ValidationError):
    """A version is not in a state that allows the requested review action."""


class ConflictError(EngineError):
    """The store rejected a write because it violates a uniqueness rule."""


class StoreUnavailableError(EngineError):
    """The backing store could not be reached or failed mid-call."""
