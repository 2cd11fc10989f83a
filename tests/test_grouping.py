from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import logging

from sprout_sync.schemas import Group, NetworkType, Profile
from sprout_sync.services.grouping import (
    DEFAULT_BUCKET_ID,
    DEFAULT_BUCKET_NAME,
    partition_by_network,
    resolve_groups,
)


def _profile(profile_id: int, network_type: str = "fb_page", groups=()) -> Profile:
    return Profile(
        id=profile_id,
        name=f"Profile {profile_id}",
        network_type=network_type,
        native_id=f"native-{profile_id}",
        group_ids=tuple(groups),
    )


def test_resolve_groups_assigns_profiles_to_declared_groups() -> None:
    groups = [Group(id=10, name="Marketing"), Group(id=20, name="Sales")]
    profiles = [_profile(1, groups=[10]), _profile(2, groups=[20]), _profile(3, groups=[10])]

    buckets = resolve_groups(profiles, groups)

    assert list(buckets) == ["10", "20", DEFAULT_BUCKET_ID]
    assert [p.id for p in buckets["10"].profiles] == [1, 3]
    assert [p.id for p in buckets["20"].profiles] == [2]
    assert buckets[DEFAULT_BUCKET_ID].profiles == []
    assert buckets[DEFAULT_BUCKET_ID].group_name == DEFAULT_BUCKET_NAME


def test_profiles_without_known_group_fall_back_to_default() -> None:
    groups = [Group(id=10, name="Marketing")]
    profiles = [_profile(1), _profile(2, groups=[99])]

    buckets = resolve_groups(profiles, groups)

    assert [p.id for p in buckets[DEFAULT_BUCKET_ID].profiles] == [1, 2]
    assert buckets["10"].profiles == []


def test_profile_in_two_groups_appears_in_both_buckets() -> None:
    groups = [Group(id=10, name="Marketing"), Group(id=20, name="Sales")]
    shared = _profile(1, groups=[10, 20, 10])

    buckets = resolve_groups([shared], groups)

    assert buckets["10"].profiles == [shared]
    assert buckets["20"].profiles == [shared]
    assert buckets[DEFAULT_BUCKET_ID].profiles == []

    # Draining one bucket leaves the other untouched.
    buckets["10"].profiles.clear()
    assert buckets["20"].profiles == [shared]


def test_group_model_reads_api_aliases() -> None:
    group = Group.model_validate({"group_id": 7, "name": "Brand", "extra": True})
    profile = Profile.model_validate(
        {
            "customer_profile_id": 5,
            "name": "Brand IG",
            "network_type": "fb_instagram_account",
            "native_id": "abc",
            "groups": [7],
        }
    )

    assert group.id == 7
    assert profile.group_ids == (7,)
    assert profile.network is NetworkType.INSTAGRAM


def test_network_type_mapping_is_total() -> None:
    assert NetworkType.from_vendor("linkedin_company") is NetworkType.LINKEDIN
    assert NetworkType.from_vendor("fb_page") is NetworkType.FACEBOOK
    assert NetworkType.from_vendor("youtube_channel") is NetworkType.YOUTUBE
    assert NetworkType.from_vendor("twitter_profile") is NetworkType.TWITTER
    assert NetworkType.from_vendor("Instagram") is NetworkType.INSTAGRAM
    assert NetworkType.from_vendor("tiktok_account") is NetworkType.UNMAPPED
    assert NetworkType.from_vendor(None) is NetworkType.UNMAPPED


def test_partition_by_network_excludes_unmapped(caplog) -> None:
    profiles = [
        _profile(1, "fb_page"),
        _profile(2, "linkedin_company"),
        _profile(3, "pinterest"),
        _profile(4, "fb_page"),
    ]

    with caplog.at_level(logging.WARNING):
        partitions = partition_by_network(profiles)

    assert set(partitions) == {
        NetworkType.INSTAGRAM,
        NetworkType.YOUTUBE,
        NetworkType.LINKEDIN,
        NetworkType.FACEBOOK,
        NetworkType.TWITTER,
    }
    assert [p.id for p in partitions[NetworkType.FACEBOOK]] == [1, 4]
    assert [p.id for p in partitions[NetworkType.LINKEDIN]] == [2]
    assert partitions[NetworkType.TWITTER] == []
    assert all(3 not in [p.id for p in members] for members in partitions.values())
    assert "pinterest" in caplog.text
