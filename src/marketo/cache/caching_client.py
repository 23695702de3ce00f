"""
Read-through, invalidate-on-write wrapper around MarketoClient.

Reads that are safe to reuse within one test run go through the scoped
cache. Every mutation drops the whole scope before it is delegated, whether
or not the upstream call then succeeds. Everything else passes straight
through.
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from marketo.bulk.models import BatchResult
from marketo.cache.backends import CacheBackend
from marketo.cache.scope import CacheScope
from marketo.cache.scoped_cache import CACHE_MISS, DEFAULT_TTL_SECONDS, ScopedCache
from marketo.capabilities.leads import DEFAULT_PARTITION_ID
from marketo.capabilities.protocols import Body
from marketo.client import MarketoClient

logger = logging.getLogger(__name__)

# A cached lead must have more than MIN and fewer than MAX fields
MIN_CACHEABLE_LEAD_FIELDS = 8
MAX_CACHEABLE_LEAD_FIELDS = 1000


def _is_cacheable_lead(body: Any) -> bool:
    if not isinstance(body, dict) or not body.get("success"):
        return False
    result = body.get("result") or []
    if not result or not isinstance(result[0], dict):
        return False
    return MIN_CACHEABLE_LEAD_FIELDS < len(result[0]) < MAX_CACHEABLE_LEAD_FIELDS


def _has_results(body: Any) -> bool:
    return isinstance(body, dict) and bool(body.get("success")) and bool(body.get("result"))


def _natural_key(value: Any, fields: Optional[Sequence[str]] = None) -> str:
    if not fields:
        return str(value)
    return f"{value}#{','.join(sorted(fields))}"


class CachingMarketoClient:
    """MarketoClient surface backed by a ScopedCache."""

    def __init__(self, client: MarketoClient, cache: ScopedCache):
        self.client = client
        self.cache = cache

    @classmethod
    def for_scope(
        cls,
        client: MarketoClient,
        backend: CacheBackend,
        id_map: Mapping[str, Any],
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> "CachingMarketoClient":
        """Wrap client with a cache scoped to one scenario run."""
        scope = CacheScope.from_id_map(id_map)
        return cls(client, ScopedCache(backend, scope, ttl_seconds))

    @property
    def settings(self):
        return self.client.settings

    async def _invalidate(self, operation: str) -> None:
        invalidated = await self.cache.invalidate_all()
        logger.debug(
            "Invalidated cache before mutation",
            extra={"operation": operation, "keys_invalidated": invalidated},
        )

    # =========================================================================
    # Leads
    # =========================================================================

    async def find_lead_by_email(self, email: str, fields: Optional[Sequence[str]] = None) -> Body:
        natural_key = _natural_key(email, fields)
        cached = await self.cache.get("Lead", natural_key)
        if cached is not CACHE_MISS:
            return cached
        body = await self.client.find_lead_by_email(email, fields)
        if _is_cacheable_lead(body):
            await self.cache.set("Lead", natural_key, body)
        return body

    async def find_lead_by_field(
        self, field: str, value: Any, fields: Optional[Sequence[str]] = None
    ) -> Body:
        natural_key = _natural_key(f"{field}={value}", fields)
        cached = await self.cache.get("Lead", natural_key)
        if cached is not CACHE_MISS:
            return cached
        body = await self.client.find_lead_by_field(field, value, fields)
        if _is_cacheable_lead(body):
            await self.cache.set("Lead", natural_key, body)
        return body

    async def describe_lead_fields(self) -> Body:
        cached = await self.cache.get("Description", "")
        if cached is not CACHE_MISS:
            return cached
        body = await self.client.describe_lead_fields()
        if _has_results(body):
            await self.cache.set("Description", "", body)
        return body

    async def find_leads_by_field(
        self, field: str, values: Sequence[Any], fields: Optional[Sequence[str]] = None
    ) -> Body:
        return await self.client.find_leads_by_field(field, values, fields)

    async def get_lead_partitions(self) -> Body:
        return await self.client.get_lead_partitions()

    async def bulk_find_leads_by_email(
        self, emails: Sequence[str], fields: Optional[Sequence[str]] = None
    ) -> list[BatchResult]:
        return await self.client.bulk_find_leads_by_email(emails, fields)

    async def bulk_find_leads_by_id(
        self, lead_ids: Sequence[Any], fields: Optional[Sequence[str]] = None
    ) -> list[BatchResult]:
        return await self.client.bulk_find_leads_by_id(lead_ids, fields)

    async def create_or_update_lead(
        self, lead: Body, partition_id: Optional[int] = None, action: str = "createOrUpdate"
    ) -> Body:
        await self._invalidate("create_or_update_lead")
        return await self.client.create_or_update_lead(lead, partition_id, action)

    async def delete_lead_by_id(self, lead_id: Any) -> Body:
        await self._invalidate("delete_lead_by_id")
        return await self.client.delete_lead_by_id(lead_id)

    async def merge_leads(self, winning_lead_id: Any, losing_lead_ids: Sequence[Any]) -> Body:
        await self._invalidate("merge_leads")
        return await self.client.merge_leads(winning_lead_id, losing_lead_ids)

    async def associate_lead(self, lead_id: Any, cookie: str) -> Body:
        await self._invalidate("associate_lead")
        return await self.client.associate_lead(lead_id, cookie)

    async def bulk_create_or_update_leads(
        self, leads: Sequence[Body], partition_id: int = DEFAULT_PARTITION_ID
    ) -> list[BatchResult]:
        await self._invalidate("bulk_create_or_update_leads")
        return await self.client.bulk_create_or_update_leads(leads, partition_id)

    # =========================================================================
    # Custom objects
    # =========================================================================

    async def get_custom_object(self, name: str) -> Body:
        cached = await self.cache.get("Object", name)
        if cached is not CACHE_MISS:
            return cached
        body = await self.client.get_custom_object(name)
        if _has_results(body):
            await self.cache.set("Object", name, body)
        return body

    async def query_custom_object(
        self,
        name: str,
        filter_type: str,
        filter_values: Sequence[Any],
        fields: Optional[Sequence[str]] = None,
    ) -> Body:
        natural_key = _natural_key(
            f"{name}:{filter_type}={','.join(str(v) for v in filter_values)}", fields
        )
        cached = await self.cache.get("Query", natural_key)
        if cached is not CACHE_MISS:
            return cached
        body = await self.client.query_custom_object(name, filter_type, filter_values, fields)
        if _has_results(body):
            await self.cache.set("Query", natural_key, body)
        return body

    async def create_or_update_custom_object(self, name: str, record: Body) -> Body:
        await self._invalidate("create_or_update_custom_object")
        return await self.client.create_or_update_custom_object(name, record)

    async def delete_custom_object(self, name: str, record: Body) -> Body:
        await self._invalidate("delete_custom_object")
        return await self.client.delete_custom_object(name, record)

    # =========================================================================
    # Campaigns
    # =========================================================================

    async def get_campaigns(self) -> list[Body]:
        cached = await self.cache.get("Campaigns", "")
        if cached is not CACHE_MISS:
            return cached
        campaigns = await self.client.get_campaigns()
        if campaigns:
            await self.cache.set("Campaigns", "", campaigns)
        return campaigns

    async def request_campaign(
        self, campaign_id: Any, lead_ids: Sequence[Any], tokens: Optional[Sequence[Body]] = None
    ) -> Body:
        await self._invalidate("request_campaign")
        return await self.client.request_campaign(campaign_id, lead_ids, tokens)

    async def bulk_request_campaign(
        self, campaign_id: Any, lead_ids: Sequence[Any]
    ) -> list[BatchResult]:
        await self._invalidate("bulk_request_campaign")
        return await self.client.bulk_request_campaign(campaign_id, lead_ids)

    # =========================================================================
    # Static lists
    # =========================================================================

    async def find_static_lists_by_name(self, name: str) -> Body:
        natural_key = f"name={name}"
        cached = await self.cache.get("StaticList", natural_key)
        if cached is not CACHE_MISS:
            return cached
        body = await self.client.find_static_lists_by_name(name)
        if _has_results(body):
            await self.cache.set("StaticList", natural_key, body)
        return body

    async def find_static_lists_by_id(self, list_id: Any) -> Body:
        natural_key = f"id={list_id}"
        cached = await self.cache.get("StaticList", natural_key)
        if cached is not CACHE_MISS:
            return cached
        body = await self.client.find_static_lists_by_id(list_id)
        if _has_results(body):
            await self.cache.set("StaticList", natural_key, body)
        return body

    async def get_static_list_members(self, list_id: Any) -> Body:
        return await self.client.get_static_list_members(list_id)

    async def add_leads_to_static_list(self, list_id: Any, lead_ids: Sequence[Any]) -> Body:
        await self._invalidate("add_leads_to_static_list")
        return await self.client.add_leads_to_static_list(list_id, lead_ids)

    async def remove_leads_from_static_list(self, list_id: Any, lead_ids: Sequence[Any]) -> Body:
        await self._invalidate("remove_leads_from_static_list")
        return await self.client.remove_leads_from_static_list(list_id, lead_ids)

    # =========================================================================
    # Programs
    # =========================================================================

    async def create_program(self, program: Body) -> Body:
        await self._invalidate("create_program")
        return await self.client.create_program(program)

    async def update_program(self, program_id: Any, updates: Body) -> Body:
        await self._invalidate("update_program")
        return await self.client.update_program(program_id, updates)

    async def delete_program(self, program_id: Any) -> Body:
        await self._invalidate("delete_program")
        return await self.client.delete_program(program_id)

    async def get_programs(self) -> Body:
        return await self.client.get_programs()

    async def find_programs_by_name(self, name: str) -> Body:
        return await self.client.find_programs_by_name(name)

    async def find_program_by_id(self, program_id: Any) -> Body:
        return await self.client.find_program_by_id(program_id)

    async def get_program_members(
        self,
        program_id: Any,
        filter_type: str,
        filter_values: Sequence[Any],
        fields: Optional[Sequence[str]] = None,
    ) -> Body:
        return await self.client.get_program_members(program_id, filter_type, filter_values, fields)

    async def describe_program_members(self) -> Body:
        return await self.client.describe_program_members()

    async def set_program_member_status(
        self, program_id: Any, lead_ids: Sequence[Any], status: str
    ) -> Body:
        await self._invalidate("set_program_member_status")
        return await self.client.set_program_member_status(program_id, lead_ids, status)

    async def remove_program_members(self, program_id: Any, lead_ids: Sequence[Any]) -> Body:
        await self._invalidate("remove_program_members")
        return await self.client.remove_program_members(program_id, lead_ids)

    async def bulk_set_program_member_status(
        self, program_id: Any, emails: Sequence[str], status: str
    ) -> list[BatchResult]:
        await self._invalidate("bulk_set_program_member_status")
        return await self.client.bulk_set_program_member_status(program_id, emails, status)

    async def bulk_remove_program_members(
        self, program_id: Any, emails: Sequence[str]
    ) -> list[BatchResult]:
        await self._invalidate("bulk_remove_program_members")
        return await self.client.bulk_remove_program_members(program_id, emails)

    # =========================================================================
    # Activities and usage
    # =========================================================================

    async def get_activity_types(self) -> Body:
        return await self.client.get_activity_types()

    async def get_activity_paging_token(self, since_datetime: str) -> Body:
        return await self.client.get_activity_paging_token(since_datetime)

    async def get_activities(
        self,
        next_page_token: str,
        lead_ids: Sequence[Any],
        activity_type_ids: Sequence[Any],
    ) -> Body:
        return await self.client.get_activities(next_page_token, lead_ids, activity_type_ids)

    async def get_daily_api_usage(self) -> Body:
        return await self.client.get_daily_api_usage()

    async def get_weekly_api_usage(self) -> Body:
        return await self.client.get_weekly_api_usage()


__all__ = [
    "CachingMarketoClient",
    "MAX_CACHEABLE_LEAD_FIELDS",
    "MIN_CACHEABLE_LEAD_FIELDS",
]
