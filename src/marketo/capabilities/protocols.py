"""
Narrow protocols for each group of Marketo operations.

Callers depend on the smallest group they need. MarketoClient implements all
of them by delegating to one implementation class per group, and
CachingMarketoClient implements them again in front of a MarketoClient.
"""

from typing import Any, Optional, Protocol, Sequence

from marketo.bulk.models import BatchResult

Body = dict[str, Any]


class TransportProtocol(Protocol):
    """The subset of MarketoApiClient used by capabilities."""

    async def get(self, endpoint: str, params: Any = None) -> Body: ...

    async def post(self, endpoint: str, json_body: Optional[Body] = None, params: Any = None) -> Body: ...

    async def delete(self, endpoint: str, params: Any = None, json_body: Optional[Body] = None) -> Body: ...


class LeadOperations(Protocol):
    async def find_lead_by_email(
        self, email: str, fields: Optional[Sequence[str]] = None
    ) -> Body: ...

    async def find_lead_by_field(
        self, field: str, value: Any, fields: Optional[Sequence[str]] = None
    ) -> Body: ...

    async def describe_lead_fields(self) -> Body: ...

    async def create_or_update_lead(
        self, lead: Body, partition_id: Optional[int] = None, action: str = "createOrUpdate"
    ) -> Body: ...

    async def delete_lead_by_id(self, lead_id: Any) -> Body: ...

    async def merge_leads(self, winning_lead_id: Any, losing_lead_ids: Sequence[Any]) -> Body: ...

    async def associate_lead(self, lead_id: Any, cookie: str) -> Body: ...

    async def get_lead_partitions(self) -> Body: ...

    async def bulk_create_or_update_leads(
        self, leads: Sequence[Body], partition_id: int = 1
    ) -> list[BatchResult]: ...

    async def find_leads_by_field(
        self, field: str, values: Sequence[Any], fields: Optional[Sequence[str]] = None
    ) -> Body: ...

    async def bulk_find_leads_by_email(
        self, emails: Sequence[str], fields: Optional[Sequence[str]] = None
    ) -> list[BatchResult]: ...

    async def bulk_find_leads_by_id(
        self, lead_ids: Sequence[Any], fields: Optional[Sequence[str]] = None
    ) -> list[BatchResult]: ...


class CustomObjectOperations(Protocol):
    async def get_custom_object(self, name: str) -> Body: ...

    async def query_custom_object(
        self,
        name: str,
        filter_type: str,
        filter_values: Sequence[Any],
        fields: Optional[Sequence[str]] = None,
    ) -> Body: ...

    async def create_or_update_custom_object(self, name: str, record: Body) -> Body: ...

    async def delete_custom_object(self, name: str, record: Body) -> Body: ...


class CampaignOperations(Protocol):
    async def get_campaigns(self) -> list[Body]: ...

    async def request_campaign(
        self, campaign_id: Any, lead_ids: Sequence[Any], tokens: Optional[Sequence[Body]] = None
    ) -> Body: ...

    async def bulk_request_campaign(
        self, campaign_id: Any, lead_ids: Sequence[Any]
    ) -> list[BatchResult]: ...


class StaticListOperations(Protocol):
    async def find_static_lists_by_name(self, name: str) -> Body: ...

    async def find_static_lists_by_id(self, list_id: Any) -> Body: ...

    async def get_static_list_members(self, list_id: Any) -> Body: ...

    async def add_leads_to_static_list(self, list_id: Any, lead_ids: Sequence[Any]) -> Body: ...

    async def remove_leads_from_static_list(self, list_id: Any, lead_ids: Sequence[Any]) -> Body: ...


class ProgramOperations(Protocol):
    async def create_program(self, program: Body) -> Body: ...

    async def update_program(self, program_id: Any, updates: Body) -> Body: ...

    async def get_programs(self) -> Body: ...

    async def find_programs_by_name(self, name: str) -> Body: ...

    async def find_program_by_id(self, program_id: Any) -> Body: ...

    async def delete_program(self, program_id: Any) -> Body: ...

    async def get_program_members(
        self,
        program_id: Any,
        filter_type: str,
        filter_values: Sequence[Any],
        fields: Optional[Sequence[str]] = None,
    ) -> Body: ...

    async def describe_program_members(self) -> Body: ...

    async def set_program_member_status(
        self, program_id: Any, lead_ids: Sequence[Any], status: str
    ) -> Body: ...

    async def remove_program_members(self, program_id: Any, lead_ids: Sequence[Any]) -> Body: ...

    async def bulk_set_program_member_status(
        self, program_id: Any, emails: Sequence[str], status: str
    ) -> list[BatchResult]: ...

    async def bulk_remove_program_members(
        self, program_id: Any, emails: Sequence[str]
    ) -> list[BatchResult]: ...


class ActivityOperations(Protocol):
    async def get_activity_types(self) -> Body: ...

    async def get_activity_paging_token(self, since_datetime: str) -> Body: ...

    async def get_activities(
        self,
        next_page_token: str,
        lead_ids: Sequence[Any],
        activity_type_ids: Sequence[Any],
    ) -> Body: ...

    async def get_daily_api_usage(self) -> Body: ...

    async def get_weekly_api_usage(self) -> Body: ...


__all__ = [
    "ActivityOperations",
    "Body",
    "CampaignOperations",
    "CustomObjectOperations",
    "LeadOperations",
    "ProgramOperations",
    "StaticListOperations",
    "TransportProtocol",
]
