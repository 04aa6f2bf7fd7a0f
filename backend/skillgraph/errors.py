"""Error taxonomy shared by the stores, the sync engine, and the session layer."""

from __future__ import annotations


class SkillGraphError(RuntimeError):
    """Base class for persistence-layer errors."""


class DuplicateIdentity(SkillGraphError):
    """Raised when signing up with an email that already exists in the store."""


class InvalidCredential(SkillGraphError):
    """Raised when no record matches the supplied email and secret."""


class StoreFault(SkillGraphError):
    """Transient store-level failure (network, non-success response, IO).

    The sync engine recovers from it by failing over to the alternate store.
    """

    def __init__(self, message: str, *, store: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.store = store
        self.status_code = status_code


class PersistenceUnavailable(SkillGraphError):
    """Raised when every eligible store faulted for the same operation."""


class ArtifactParseFailure(SkillGraphError):
    """Malformed reasoning output; recovered locally with a default artifact."""


class SessionError(SkillGraphError):
    """Raised for invalid session lifecycle transitions."""


__all__ = [
    "ArtifactParseFailure",
    "DuplicateIdentity",
    "InvalidCredential",
    "PersistenceUnavailable",
    "SessionError",
    "SkillGraphError",
    "StoreFault",
]
