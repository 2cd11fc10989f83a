"""
Pydantic models for the Sprout Social records consumed by the sync engine.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NetworkType(str, Enum):
    """Canonical network categories that receive their own sheet tab."""

    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    TWITTER = "twitter"
    UNMAPPED = "unmapped"

    @property
    def sheet_title(self) -> str:
        """Tab title used inside each group's spreadsheet."""
        return self.value.capitalize()

    @classmethod
    def from_vendor(cls, raw: str | None) -> "NetworkType":
        """Map a Sprout ``network_type`` onto the closed set, or ``UNMAPPED``."""
        if not raw:
            return cls.UNMAPPED
        mapped = VENDOR_NETWORK_TYPES.get(raw)
        if mapped is not None:
            return mapped
        lowered = raw.lower()
        for member in SUPPORTED_NETWORKS:
            if member.value == lowered:
                return member
        return cls.UNMAPPED


SUPPORTED_NETWORKS: tuple[NetworkType, ...] = (
    NetworkType.INSTAGRAM,
    NetworkType.YOUTUBE,
    NetworkType.LINKEDIN,
    NetworkType.FACEBOOK,
    NetworkType.TWITTER,
)

VENDOR_NETWORK_TYPES: Dict[str, NetworkType] = {
    "linkedin_company": NetworkType.LINKEDIN,
    "fb_instagram_account": NetworkType.INSTAGRAM,
    "fb_page": NetworkType.FACEBOOK,
    "youtube_channel": NetworkType.YOUTUBE,
    "twitter_profile": NetworkType.TWITTER,
}


class Group(BaseModel):
    """A Sprout customer group; maps to one spreadsheet per folder."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int = Field(..., alias="group_id")
    name: str


class Profile(BaseModel):
    """A tracked social profile as returned by the customer metadata endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int = Field(..., alias="customer_profile_id")
    name: str = ""
    network_type: str = ""
    native_id: Optional[str] = None
    group_ids: tuple[int, ...] = Field(default=(), alias="groups")

    @property
    def network(self) -> NetworkType:
        return NetworkType.from_vendor(self.network_type)


class GroupBucket(BaseModel):
    """Profiles that belong to one group (or the synthetic default bucket)."""

    group_id: str
    group_name: str
    profiles: List[Profile] = Field(default_factory=list)


class AnalyticsDataPoint(BaseModel):
    """One day of metrics for one profile."""

    model_config = ConfigDict(frozen=True)

    profile_id: int
    reporting_date: date
    metrics: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> tuple[int, date]:
        return self.profile_id, self.reporting_date

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> Optional["AnalyticsDataPoint"]:
        """Build a data point from a raw analytics row, or ``None`` if incomplete."""
        dimensions = payload.get("dimensions") or {}
        profile_id = dimensions.get("customer_profile_id")
        period = dimensions.get("reporting_period.by(day)") or dimensions.get(
            "reporting_period"
        )
        if profile_id is None or not period:
            return None
        try:
            reporting_date = date.fromisoformat(str(period)[:10])
            profile_id = int(profile_id)
        except ValueError:
            return None
        return cls(
            profile_id=profile_id,
            reporting_date=reporting_date,
            metrics=dict(payload.get("metrics") or {}),
        )


__all__ = [
    "AnalyticsDataPoint",
    "Group",
    "GroupBucket",
    "NetworkType",
    "Profile",
    "SUPPORTED_NETWORKS",
    "VENDOR_NETWORK_TYPES",
]
