"""Error taxonomy shared by the reconciliation engine and its clients."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for failures raised by the sync engine."""


class TransientApiError(SyncError):
    """Network, 5xx or quota failure that is expected to clear on retry."""


class AuthFailure(SyncError):
    """Raised when the Google service account cannot be (re)authorized."""


class AlreadyExistsError(SyncError):
    """Raised when an idempotent create finds its target already present."""


class ResolutionError(SyncError):
    """A profile, group or data point could not be mapped."""


class LocateFailure(SyncError):
    """The document store could not be searched for an existing document."""


class FatalGroupError(SyncError):
    """A group's reconciliation cycle cannot complete."""


__all__ = [
    "AlreadyExistsError",
    "AuthFailure",
    "FatalGroupError",
    "LocateFailure",
    "ResolutionError",
    "SyncError",
    "TransientApiError",
]
