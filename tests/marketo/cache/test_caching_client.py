"""Tests for CachingMarketoClient caching and invalidation policies."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from config.config import BulkSettings
from marketo.api_client import MarketoApiError
from marketo.cache.backends import InMemoryCacheBackend
from marketo.cache.caching_client import CachingMarketoClient
from marketo.cache.scoped_cache import CACHE_MISS


def _lead_body(field_count: int) -> dict:
    lead = {f"field{i}": i for i in range(field_count)}
    return {"success": True, "result": [lead]}


@pytest.fixture
def inner():
    client = MagicMock()
    client.settings = BulkSettings()
    for name in (
        "find_lead_by_email",
        "find_lead_by_field",
        "describe_lead_fields",
        "get_custom_object",
        "query_custom_object",
        "find_static_lists_by_name",
        "find_static_lists_by_id",
        "create_or_update_lead",
        "bulk_create_or_update_leads",
        "request_campaign",
        "set_program_member_status",
        "get_programs",
    ):
        setattr(client, name, AsyncMock(return_value={"success": True, "result": [{"id": 1}]}))
    client.get_campaigns = AsyncMock(return_value=[{"id": 1, "name": "A"}])
    return client


@pytest.fixture
def caching(inner):
    return CachingMarketoClient.for_scope(
        inner,
        InMemoryCacheBackend(),
        {"scenarioId": "scenario-1", "requestorId": "requestor-1"},
    )


class TestLeadCaching:
    async def test_lead_with_enough_fields_is_cached(self, caching, inner):
        inner.find_lead_by_email.return_value = _lead_body(9)

        first = await caching.find_lead_by_email("a@example.com", fields=["score"])
        second = await caching.find_lead_by_email("a@example.com", fields=["score"])

        assert first == second
        inner.find_lead_by_email.assert_awaited_once()

    @pytest.mark.parametrize("field_count", [8, 1000])
    async def test_lead_outside_field_bounds_is_not_cached(self, caching, inner, field_count):
        inner.find_lead_by_email.return_value = _lead_body(field_count)

        await caching.find_lead_by_email("a@example.com")
        await caching.find_lead_by_email("a@example.com")

        assert inner.find_lead_by_email.await_count == 2

    async def test_different_field_lists_are_different_entries(self, caching, inner):
        inner.find_lead_by_email.return_value = _lead_body(9)

        await caching.find_lead_by_email("a@example.com", fields=["score"])
        await caching.find_lead_by_email("a@example.com", fields=["rating"])

        assert inner.find_lead_by_email.await_count == 2

    async def test_find_by_field_uses_field_and_value(self, caching, inner):
        inner.find_lead_by_field.return_value = _lead_body(9)

        await caching.find_lead_by_field("id", 1)
        await caching.find_lead_by_field("id", 2)
        await caching.find_lead_by_field("id", 1)

        assert inner.find_lead_by_field.await_count == 2
        assert await caching.cache.get("Lead", "id=1") == _lead_body(9)

    async def test_description_is_cached(self, caching, inner):
        await caching.describe_lead_fields()
        await caching.describe_lead_fields()

        inner.describe_lead_fields.assert_awaited_once()
        assert await caching.cache.get("Description", "") is not CACHE_MISS


class TestResultCaching:
    async def test_empty_results_are_not_cached(self, caching, inner):
        inner.get_custom_object.return_value = {"success": True, "result": []}

        await caching.get_custom_object("car_c")
        await caching.get_custom_object("car_c")

        assert inner.get_custom_object.await_count == 2

    async def test_failed_envelope_is_not_cached(self, caching, inner):
        inner.find_static_lists_by_name.return_value = {
            "success": False,
            "errors": [{"code": "606", "message": "Rate limit"}],
        }

        await caching.find_static_lists_by_name("VIPs")
        await caching.find_static_lists_by_name("VIPs")

        assert inner.find_static_lists_by_name.await_count == 2

    async def test_query_cached_per_filter(self, caching, inner):
        await caching.query_custom_object("car_c", "vin", ["1"])
        await caching.query_custom_object("car_c", "vin", ["1"])
        await caching.query_custom_object("car_c", "vin", ["2"])

        assert inner.query_custom_object.await_count == 2
        assert await caching.cache.get("Query", "car_c:vin=1") is not CACHE_MISS

    async def test_static_lists_by_name_and_id_are_separate(self, caching, inner):
        await caching.find_static_lists_by_name("1")
        await caching.find_static_lists_by_id("1")

        inner.find_static_lists_by_name.assert_awaited_once()
        inner.find_static_lists_by_id.assert_awaited_once()

    async def test_campaigns_cached_when_non_empty(self, caching, inner):
        await caching.get_campaigns()
        campaigns = await caching.get_campaigns()

        assert campaigns == [{"id": 1, "name": "A"}]
        inner.get_campaigns.assert_awaited_once()

    async def test_empty_campaign_list_is_not_cached(self, caching, inner):
        inner.get_campaigns.return_value = []

        await caching.get_campaigns()
        await caching.get_campaigns()

        assert inner.get_campaigns.await_count == 2


class TestInvalidation:
    async def test_mutation_invalidates_scope(self, caching, inner):
        await caching.get_custom_object("car_c")

        await caching.create_or_update_lead({"email": "a@example.com"})
        await caching.get_custom_object("car_c")

        assert inner.get_custom_object.await_count == 2

    async def test_invalidates_even_when_mutation_fails(self, caching, inner):
        await caching.describe_lead_fields()
        inner.request_campaign.side_effect = MarketoApiError("Server error (503)")

        with pytest.raises(MarketoApiError):
            await caching.request_campaign(77, [1])

        assert await caching.cache.get("Description", "") is CACHE_MISS

    async def test_bulk_mutation_invalidates(self, caching, inner):
        await caching.describe_lead_fields()

        await caching.bulk_create_or_update_leads([{"email": "a@example.com"}])

        assert await caching.cache.get("Description", "") is CACHE_MISS
        inner.bulk_create_or_update_leads.assert_awaited_once_with([{"email": "a@example.com"}], 1)

    async def test_membership_change_invalidates(self, caching, inner):
        await caching.describe_lead_fields()

        await caching.set_program_member_status(1001, [1], "Registered")

        assert await caching.cache.get("Description", "") is CACHE_MISS


class TestPassThrough:
    async def test_uncached_reads_pass_through(self, caching, inner):
        await caching.get_programs()
        await caching.get_programs()

        assert inner.get_programs.await_count == 2

    def test_settings_come_from_wrapped_client(self, caching, inner):
        assert caching.settings is inner.settings
