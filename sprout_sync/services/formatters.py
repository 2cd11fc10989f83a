"""
Per-network sheet layouts.

Each network tab starts with the same identity columns followed by the
metrics that network reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sprout_sync.schemas import AnalyticsDataPoint, NetworkType, Profile

IDENTITY_HEADERS = ("Date", "Network Type", "Profile Name", "Network ID", "Profile ID")
DATE_COLUMN = 0
PROFILE_ID_COLUMN = 4

# Day zero of the serial numbers Sheets uses for dates.
SHEETS_EPOCH = date(1899, 12, 30)
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d", "%d.%m.%Y")
_FORMULA_PREFIXES = ("=", "+", "-", "@")


def _number(value: Any) -> float | int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _literal(value: Any) -> str:
    """Text that ``USER_ENTERED`` input keeps verbatim instead of parsing."""
    text = str(value)
    if text.startswith(_FORMULA_PREFIXES) or text.isdigit():
        return "'" + text
    return text


@dataclass(frozen=True)
class NetworkFormatter:
    network: NetworkType
    metrics: tuple[tuple[str, str], ...]

    @property
    def headers(self) -> List[str]:
        return [*IDENTITY_HEADERS, *(header for header, _ in self.metrics)]

    @property
    def metric_names(self) -> tuple[str, ...]:
        return tuple(name for _, name in self.metrics)

    def format(
        self, point: AnalyticsDataPoint, profile: Profile
    ) -> Optional[List[Any]]:
        """Build a sheet row, or ``None`` when the point carries no metrics."""
        if not point.metrics:
            return None
        row: List[Any] = [
            point.reporting_date.isoformat(),
            profile.network_type,
            _literal(profile.name),
            _literal(profile.native_id or ""),
            str(profile.id),
        ]
        row.extend(_number(point.metrics.get(name, 0)) for name in self.metric_names)
        return row


_SHARED = (
    ("Lifetime Followers Count", "lifetime_snapshot.followers_count"),
    ("Net Follower Growth", "net_follower_growth"),
    ("Total Impressions", "impressions"),
    ("Total Comments", "comments_count"),
    ("Total Shares", "shares_count"),
    ("Posts Published Count", "posts_sent_count"),
)

FORMATTERS: Dict[NetworkType, NetworkFormatter] = {
    NetworkType.INSTAGRAM: NetworkFormatter(
        NetworkType.INSTAGRAM,
        _SHARED
        + (
            ("Total Post Likes", "post_likes"),
            ("Total Post Saves", "post_saves"),
            ("Total Story Replies", "story_replies"),
            ("Net Following Growth", "net_following_growth"),
        ),
    ),
    NetworkType.YOUTUBE: NetworkFormatter(
        NetworkType.YOUTUBE,
        _SHARED
        + (
            ("Total Video Views", "video_views"),
            ("Total Likes", "likes"),
            ("Total Dislikes", "dislikes"),
            ("Followers Gained", "followers_gained"),
            ("Followers Lost", "followers_lost"),
        ),
    ),
    NetworkType.LINKEDIN: NetworkFormatter(
        NetworkType.LINKEDIN,
        _SHARED
        + (
            ("Total Reactions", "reactions"),
            ("Total Link Clicks", "post_link_clicks"),
            ("Total Content Clicks", "post_content_clicks"),
            ("Followers Gained", "followers_gained"),
            ("Followers Lost", "followers_lost"),
        ),
    ),
    NetworkType.FACEBOOK: NetworkFormatter(
        NetworkType.FACEBOOK,
        _SHARED
        + (
            ("Total Reactions", "reactions"),
            ("Total Link Clicks", "post_link_clicks"),
            ("Total Other Content Clicks", "post_content_clicks_other"),
            ("Total Video Views", "video_views"),
        ),
    ),
    NetworkType.TWITTER: NetworkFormatter(
        NetworkType.TWITTER,
        _SHARED
        + (
            ("Total Likes", "likes"),
            ("Total Link Clicks", "post_link_clicks"),
            ("Total Other Content Clicks", "post_content_clicks_other"),
            ("Other Engagements", "engagements_other"),
        ),
    ),
}


def required_metrics(formatters: Iterable[NetworkFormatter] | None = None) -> List[str]:
    """Union of metric names, in first-seen order, for the analytics request."""
    seen: Dict[str, None] = {}
    for formatter in formatters if formatters is not None else FORMATTERS.values():
        for name in formatter.metric_names:
            seen.setdefault(name, None)
    return list(seen)


def parse_sheet_date(value: Any) -> Optional[date]:
    """
    Read a Date cell whichever way Sheets hands it back.

    ``USER_ENTERED`` turns the ISO strings we write into real dates, which an
    unformatted read returns as serial day numbers. Cells typed in by hand may
    still hold text such as ``12/31/2024``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return SHEETS_EPOCH + timedelta(days=int(value))
    text = str(value).strip().split(" ")[0].split("T")[0]
    for pattern in _DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    return None


def row_key(row: List[Any]) -> Optional[tuple[Any, str]]:
    """Identity of a sheet row: its date and profile id."""
    if len(row) <= PROFILE_ID_COLUMN:
        return None
    cell = row[DATE_COLUMN]
    day = parse_sheet_date(cell)
    profile_id = row[PROFILE_ID_COLUMN]
    if isinstance(profile_id, float) and profile_id.is_integer():
        profile_id = int(profile_id)
    return (day if day is not None else str(cell).strip()), str(profile_id).strip()


__all__ = [
    "FORMATTERS",
    "IDENTITY_HEADERS",
    "NetworkFormatter",
    "parse_sheet_date",
    "required_metrics",
    "row_key",
]
