"""Client for the Sprout Social metadata and analytics endpoints."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Sequence

import httpx

from sprout_sync.core.config import SproutSettings
from sprout_sync.schemas import AnalyticsDataPoint, Group, Profile
from sprout_sync.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)

_CHUNK_MONTHS = 3


def _add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp to the last valid day of the target month.
    for day in (value.day, 30, 29, 28):
        try:
            return date(year, month, day)
        except ValueError:
            continue
    raise ValueError(f"Cannot shift {value} by {months} months")


def date_chunks(start: date, end: date) -> List[tuple[date, date]]:
    """Split an inclusive date range into windows of at most three months."""
    chunks: List[tuple[date, date]] = []
    current = start
    while current <= end:
        chunk_end = min(_add_months(current, _CHUNK_MONTHS), end)
        chunks.append((current, chunk_end))
        current = chunk_end + timedelta(days=1)
    return chunks


class SproutClient:
    """Fetch groups, profiles and daily profile analytics."""

    def __init__(
        self,
        settings: SproutSettings,
        *,
        metrics: Sequence[str],
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._metrics = list(metrics)
        self._retry_config = retry_config or RetryConfig()
        self._transport = transport

    @property
    def _customer_url(self) -> str:
        base = str(self._settings.base_url).rstrip("/")
        return f"{base}/{self._settings.customer_id}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.request_timeout_seconds,
            headers={
                "Authorization": f"Bearer {self._settings.api_token}",
                "Content-Type": "application/json",
            },
            transport=self._transport,
        )

    async def fetch_groups(self) -> List[Group]:
        """Return every customer group."""
        async with self._client() as client:
            response = await request_with_retry(
                client.get,
                f"{self._customer_url}/metadata/customer/groups",
                retry_config=self._retry_config,
            )
        groups = [Group.model_validate(item) for item in response.json().get("data") or []]
        logger.info("Fetched %s customer groups", len(groups))
        return groups

    async def fetch_profiles(self) -> List[Profile]:
        """Return every profile connected to the customer."""
        async with self._client() as client:
            response = await request_with_retry(
                client.get,
                f"{self._customer_url}/metadata/customer",
                retry_config=self._retry_config,
            )
        profiles = [
            Profile.model_validate(item) for item in response.json().get("data") or []
        ]
        logger.info("Fetched %s profiles", len(profiles))
        return profiles

    async def fetch_analytics(
        self, profile_ids: Iterable[int], start: date, end: date
    ) -> List[AnalyticsDataPoint]:
        """Return daily data points for ``profile_ids`` across ``start``..``end``."""
        ids = [str(profile_id) for profile_id in profile_ids]
        if not ids:
            return []

        points: List[AnalyticsDataPoint] = []
        async with self._client() as client:
            for chunk_start, chunk_end in date_chunks(start, end):
                page = 1
                while True:
                    payload = self._analytics_payload(ids, chunk_start, chunk_end, page)
                    response = await request_with_retry(
                        client.post,
                        f"{self._customer_url}/analytics/profiles",
                        json=payload,
                        retry_config=self._retry_config,
                    )
                    body = response.json()
                    for item in body.get("data") or []:
                        point = AnalyticsDataPoint.from_api(item)
                        if point is None:
                            logger.warning("Skipping analytics row without profile or date")
                            continue
                        points.append(point)

                    paging = body.get("paging") or {}
                    total_pages = int(paging.get("total_pages") or 1)
                    if page >= total_pages:
                        break
                    page += 1

        logger.info(
            "Fetched %s analytics rows for %s profiles (%s to %s)",
            len(points),
            len(ids),
            start.isoformat(),
            end.isoformat(),
        )
        return points

    def _analytics_payload(
        self, ids: List[str], start: date, end: date, page: int
    ) -> Dict[str, Any]:
        return {
            "filters": [
                f"customer_profile_id.eq({', '.join(ids)})",
                f"reporting_period.in({start.isoformat()}...{end.isoformat()})",
            ],
            "metrics": self._metrics,
            "page": page,
        }


__all__ = ["SproutClient", "date_chunks"]
