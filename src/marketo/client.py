"""
MarketoClient: every capability group behind one object.

Each operation is delegated explicitly to the capability that owns it, so
the full surface is visible here and in the protocols it satisfies.
"""

import logging
from typing import Any, Optional, Sequence

from config.config import BulkSettings, MarketoConfig
from marketo.api_client import MarketoApiClient
from marketo.bulk.alerts import Alerter, build_alerter
from marketo.bulk.error_shapes import ErrorShapeParser
from marketo.bulk.models import BatchResult
from marketo.capabilities.activities import ActivityCapability
from marketo.capabilities.campaigns import CampaignCapability
from marketo.capabilities.custom_objects import CustomObjectCapability
from marketo.capabilities.leads import DEFAULT_PARTITION_ID, LeadCapability
from marketo.capabilities.programs import ProgramCapability
from marketo.capabilities.protocols import Body, TransportProtocol
from marketo.capabilities.static_lists import StaticListCapability

logger = logging.getLogger(__name__)


class MarketoClient:
    def __init__(
        self,
        transport: TransportProtocol,
        settings: Optional[BulkSettings] = None,
        alerter: Optional[Alerter] = None,
    ):
        self.transport = transport
        self.settings = settings or BulkSettings()
        parser = ErrorShapeParser(
            alerter=alerter, partial_failure_codes=self.settings.partial_failure_codes
        )
        self.leads = LeadCapability(transport, self.settings)
        self.programs = ProgramCapability(transport, self.leads, self.settings)
        self.campaigns = CampaignCapability(transport, self.settings, parser)
        self.custom_objects = CustomObjectCapability(transport)
        self.static_lists = StaticListCapability(transport)
        self.activities = ActivityCapability(transport)

    @classmethod
    def from_config(cls, config: MarketoConfig) -> "MarketoClient":
        """Build a client, its transport and its alert channel from config."""
        return cls(
            MarketoApiClient.from_config(config),
            settings=config.bulk,
            alerter=build_alerter(config.alert_webhook_url),
        )

    async def __aenter__(self) -> "MarketoClient":
        if hasattr(self.transport, "__aenter__"):
            await self.transport.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()

    # =========================================================================
    # Leads
    # =========================================================================

    async def find_lead_by_email(self, email: str, fields: Optional[Sequence[str]] = None) -> Body:
        return await self.leads.find_lead_by_email(email, fields)

    async def find_lead_by_field(
        self, field: str, value: Any, fields: Optional[Sequence[str]] = None
    ) -> Body:
        return await self.leads.find_lead_by_field(field, value, fields)

    async def find_leads_by_field(
        self, field: str, values: Sequence[Any], fields: Optional[Sequence[str]] = None
    ) -> Body:
        return await self.leads.find_leads_by_field(field, values, fields)

    async def describe_lead_fields(self) -> Body:
        return await self.leads.describe_lead_fields()

    async def create_or_update_lead(
        self, lead: Body, partition_id: Optional[int] = None, action: str = "createOrUpdate"
    ) -> Body:
        return await self.leads.create_or_update_lead(lead, partition_id, action)

    async def delete_lead_by_id(self, lead_id: Any) -> Body:
        return await self.leads.delete_lead_by_id(lead_id)

    async def merge_leads(self, winning_lead_id: Any, losing_lead_ids: Sequence[Any]) -> Body:
        return await self.leads.merge_leads(winning_lead_id, losing_lead_ids)

    async def associate_lead(self, lead_id: Any, cookie: str) -> Body:
        return await self.leads.associate_lead(lead_id, cookie)

    async def get_lead_partitions(self) -> Body:
        return await self.leads.get_lead_partitions()

    async def bulk_create_or_update_leads(
        self, leads: Sequence[Body], partition_id: int = DEFAULT_PARTITION_ID
    ) -> list[BatchResult]:
        return await self.leads.bulk_create_or_update_leads(leads, partition_id)

    async def bulk_find_leads_by_email(
        self, emails: Sequence[str], fields: Optional[Sequence[str]] = None
    ) -> list[BatchResult]:
        return await self.leads.bulk_find_leads_by_email(emails, fields)

    async def bulk_find_leads_by_id(
        self, lead_ids: Sequence[Any], fields: Optional[Sequence[str]] = None
    ) -> list[BatchResult]:
        return await self.leads.bulk_find_leads_by_id(lead_ids, fields)

    # =========================================================================
    # Custom objects
    # =========================================================================

    async def get_custom_object(self, name: str) -> Body:
        return await self.custom_objects.get_custom_object(name)

    async def query_custom_object(
        self,
        name: str,
        filter_type: str,
        filter_values: Sequence[Any],
        fields: Optional[Sequence[str]] = None,
    ) -> Body:
        return await self.custom_objects.query_custom_object(name, filter_type, filter_values, fields)

    async def create_or_update_custom_object(self, name: str, record: Body) -> Body:
        return await self.custom_objects.create_or_update_custom_object(name, record)

    async def delete_custom_object(self, name: str, record: Body) -> Body:
        return await self.custom_objects.delete_custom_object(name, record)

    # =========================================================================
    # Campaigns
    # =========================================================================

    async def get_campaigns(self) -> list[Body]:
        return await self.campaigns.get_campaigns()

    async def request_campaign(
        self, campaign_id: Any, lead_ids: Sequence[Any], tokens: Optional[Sequence[Body]] = None
    ) -> Body:
        return await self.campaigns.request_campaign(campaign_id, lead_ids, tokens)

    async def bulk_request_campaign(
        self, campaign_id: Any, lead_ids: Sequence[Any]
    ) -> list[BatchResult]:
        return await self.campaigns.bulk_request_campaign(campaign_id, lead_ids)

    # =========================================================================
    # Static lists
    # =========================================================================

    async def find_static_lists_by_name(self, name: str) -> Body:
        return await self.static_lists.find_static_lists_by_name(name)

    async def find_static_lists_by_id(self, list_id: Any) -> Body:
        return await self.static_lists.find_static_lists_by_id(list_id)

    async def get_static_list_members(self, list_id: Any) -> Body:
        return await self.static_lists.get_static_list_members(list_id)

    async def add_leads_to_static_list(self, list_id: Any, lead_ids: Sequence[Any]) -> Body:
        return await self.static_lists.add_leads_to_static_list(list_id, lead_ids)

    async def remove_leads_from_static_list(self, list_id: Any, lead_ids: Sequence[Any]) -> Body:
        return await self.static_lists.remove_leads_from_static_list(list_id, lead_ids)

    # =========================================================================
    # Programs
    # =========================================================================

    async def create_program(self, program: Body) -> Body:
        return await self.programs.create_program(program)

    async def update_program(self, program_id: Any, updates: Body) -> Body:
        return await self.programs.update_program(program_id, updates)

    async def get_programs(self) -> Body:
        return await self.programs.get_programs()

    async def find_programs_by_name(self, name: str) -> Body:
        return await self.programs.find_programs_by_name(name)

    async def find_program_by_id(self, program_id: Any) -> Body:
        return await self.programs.find_program_by_id(program_id)

    async def delete_program(self, program_id: Any) -> Body:
        return await self.programs.delete_program(program_id)

    async def get_program_members(
        self,
        program_id: Any,
        filter_type: str,
        filter_values: Sequence[Any],
        fields: Optional[Sequence[str]] = None,
    ) -> Body:
        return await self.programs.get_program_members(program_id, filter_type, filter_values, fields)

    async def describe_program_members(self) -> Body:
        return await self.programs.describe_program_members()

    async def set_program_member_status(
        self, program_id: Any, lead_ids: Sequence[Any], status: str
    ) -> Body:
        return await self.programs.set_program_member_status(program_id, lead_ids, status)

    async def remove_program_members(self, program_id: Any, lead_ids: Sequence[Any]) -> Body:
        return await self.programs.remove_program_members(program_id, lead_ids)

    async def bulk_set_program_member_status(
        self, program_id: Any, emails: Sequence[str], status: str
    ) -> list[BatchResult]:
        return await self.programs.bulk_set_program_member_status(program_id, emails, status)

    async def bulk_remove_program_members(
        self, program_id: Any, emails: Sequence[str]
    ) -> list[BatchResult]:
        return await self.programs.bulk_remove_program_members(program_id, emails)

    # =========================================================================
    # Activities and usage
    # =========================================================================

    async def get_activity_types(self) -> Body:
        return await self.activities.get_activity_types()

    async def get_activity_paging_token(self, since_datetime: str) -> Body:
        return await self.activities.get_activity_paging_token(since_datetime)

    async def get_activities(
        self,
        next_page_token: str,
        lead_ids: Sequence[Any],
        activity_type_ids: Sequence[Any],
    ) -> Body:
        return await self.activities.get_activities(next_page_token, lead_ids, activity_type_ids)

    async def get_daily_api_usage(self) -> Body:
        return await self.activities.get_daily_api_usage()

    async def get_weekly_api_usage(self) -> Body:
        return await self.activities.get_weekly_api_usage()


__all__ = ["MarketoClient"]
