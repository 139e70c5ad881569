"""Tests for aggregate statistics.

Key behaviors tested:
- Counts, follower aggregates and activity windows over all profiles
- Every aggregate honors the filter
- An empty set reports zeros
- Statistics refuse to run inside an open transaction
"""

import pytest

from profilestore import ProfileStore, ProfileStoreError


class TestStatistics:
    """Tests for statistics."""

    async def test_empty_store(self, store: ProfileStore) -> None:
        stats = await store.statistics()
        assert stats.to_dict() == {
            "total": 0,
            "verified_count": 0,
            "business_count": 0,
            "avg_followers": 0.0,
            "max_followers": 0,
            "min_followers": 0,
            "active_today": 0,
            "new_this_week": 0,
        }

    async def test_all_profiles(self, populated_store: ProfileStore) -> None:
        stats = await populated_store.statistics()
        assert stats.total == 10
        assert stats.verified_count == 3
        assert stats.business_count == 2
        assert stats.avg_followers == pytest.approx(236.0)
        assert stats.max_followers == 1500
        assert stats.min_followers == 10
        assert stats.active_today == 1
        assert stats.new_this_week == 8

    async def test_filtered(self, populated_store: ProfileStore) -> None:
        stats = await populated_store.statistics({"city": "Berlin"})
        assert stats.total == 2
        assert stats.verified_count == 2
        assert stats.business_count == 0
        assert stats.avg_followers == pytest.approx(275.0)
        assert stats.max_followers == 500
        assert stats.min_followers == 50
        assert stats.new_this_week == 1

    async def test_filter_matching_nothing(self, populated_store: ProfileStore) -> None:
        stats = await populated_store.statistics({"user_name": "nobody"})
        assert stats.total == 0
        assert stats.avg_followers == 0.0

    async def test_total_matches_query_total(
        self, populated_store: ProfileStore
    ) -> None:
        filters = {"is_verified": True}
        page = await populated_store.query(filters, page_size=1)
        stats = await populated_store.statistics(filters)
        assert stats.total == page.total == 3

    async def test_refused_inside_transaction(self, store: ProfileStore) -> None:
        async with store.transaction():
            with pytest.raises(ProfileStoreError):
                await store.statistics()
