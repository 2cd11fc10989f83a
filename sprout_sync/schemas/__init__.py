"""Public schema exports."""

from .analytics import (
    SUPPORTED_NETWORKS,
    VENDOR_NETWORK_TYPES,
    AnalyticsDataPoint,
    Group,
    GroupBucket,
    NetworkType,
    Profile,
)
from .documents import (
    AccessToken,
    DocumentListing,
    GroupSyncResult,
    SyncSummary,
    TargetDocument,
)

__all__ = [
    "AccessToken",
    "AnalyticsDataPoint",
    "DocumentListing",
    "Group",
    "GroupBucket",
    "GroupSyncResult",
    "NetworkType",
    "Profile",
    "SUPPORTED_NETWORKS",
    "SyncSummary",
    "TargetDocument",
    "VENDOR_NETWORK_TYPES",
]
