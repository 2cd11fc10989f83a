"""
Organize profiles into group buckets and per-network partitions.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from sprout_sync.schemas import (
    SUPPORTED_NETWORKS,
    Group,
    GroupBucket,
    NetworkType,
    Profile,
)

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_ID = "default"
DEFAULT_BUCKET_NAME = "Ungrouped Profiles"


def resolve_groups(
    profiles: Sequence[Profile], groups: Sequence[Group]
) -> Dict[str, GroupBucket]:
    """
    Build one bucket per group plus the ``default`` bucket.

    A profile is appended to every known group it declares, keeping input
    order. Profiles that match no known group land in ``default`` only.
    """
    buckets: Dict[str, GroupBucket] = {}
    for group in groups:
        buckets[str(group.id)] = GroupBucket(group_id=str(group.id), group_name=group.name)
    buckets[DEFAULT_BUCKET_ID] = GroupBucket(
        group_id=DEFAULT_BUCKET_ID, group_name=DEFAULT_BUCKET_NAME
    )

    for profile in profiles:
        assigned: set[str] = set()
        for group_id in profile.group_ids:
            key = str(group_id)
            bucket = buckets.get(key)
            if bucket is None or key == DEFAULT_BUCKET_ID or key in assigned:
                continue
            bucket.profiles.append(profile)
            assigned.add(key)
        if not assigned:
            buckets[DEFAULT_BUCKET_ID].profiles.append(profile)

    for bucket in buckets.values():
        logger.debug(
            "Group %s (%s): %s profiles",
            bucket.group_name,
            bucket.group_id,
            len(bucket.profiles),
        )
    return buckets


def partition_by_network(
    profiles: Iterable[Profile],
) -> Dict[NetworkType, List[Profile]]:
    """Split profiles by canonical network; unmapped profiles are reported and left out."""
    partitions: Dict[NetworkType, List[Profile]] = {network: [] for network in SUPPORTED_NETWORKS}
    for profile in profiles:
        network = profile.network
        if network is NetworkType.UNMAPPED:
            logger.warning(
                "Unrecognized network type %r for profile %s (%s); not assigned to any tab",
                profile.network_type,
                profile.name,
                profile.id,
            )
            continue
        partitions[network].append(profile)
    return partitions


__all__ = [
    "DEFAULT_BUCKET_ID",
    "DEFAULT_BUCKET_NAME",
    "partition_by_network",
    "resolve_groups",
]
