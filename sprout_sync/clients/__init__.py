"""Expose constructed client wrappers."""

from .google_auth import ServiceAccountAuthorizer
from .google_drive import GoogleDriveClient
from .google_sheets import GoogleSheetsClient
from .sprout import SproutClient

__all__ = [
    "GoogleDriveClient",
    "GoogleSheetsClient",
    "ServiceAccountAuthorizer",
    "SproutClient",
]
