# swiftdispatch/errors.py
"""
Error taxonomy for the dispatch engine.

Every error carries a ``kind`` (stable, machine-readable) and the id of the
offending entity so calling layers can turn it into a notification.
"""

from __future__ import annotations

from typing import Optional


class DispatchError(Exception):
    """Base class for all engine errors."""

    kind: str = "dispatch_error"

    def __init__(self, message: str, entity_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, entity_id={self.entity_id!r})"


class NotFoundError(DispatchError):
    """Unknown delivery or driver id."""

    kind = "not_found"


class InvalidTransitionError(DispatchError):
    """The delivery status machine rejected a transition."""

    kind = "invalid_transition"


class ConflictError(DispatchError):
    """An assignment precondition was violated (e.g. the driver is not available)."""

    kind = "conflict"


class NoCandidateError(DispatchError):
    """No eligible driver exists for an operation that requires one."""

    kind = "no_candidate"
