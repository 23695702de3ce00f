"""Lead operations, including partition resolution and bulk upserts and lookups."""

import logging
from typing import Any, Optional, Sequence

from config.config import BulkSettings
from core.errors.exceptions import PermanentError
from marketo.api_client import ensure_success
from marketo.bulk.chunker import chunk
from marketo.bulk.dispatcher import BatchDispatcher
from marketo.bulk.models import Batch, BatchResult, DispatchMode
from marketo.capabilities.protocols import Body, TransportProtocol

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = ("email", "createdAt", "updatedAt", "id", "firstName", "lastName")
DEFAULT_PARTITION_ID = 1


class PartitionNotFoundError(PermanentError):
    """The requested lead partition does not exist.

    Raised before any batch is built, so a bulk run fails as a whole.
    """

    def __init__(self, partition_id: Any):
        super().__init__(
            f"There is no Partition with id {partition_id}",
            context={"partition_id": partition_id},
        )
        self.partition_id = partition_id


def _merge_fields(fields: Optional[Sequence[str]]) -> Optional[str]:
    if not fields:
        return None
    merged = list(dict.fromkeys([*fields, *DEFAULT_FIELDS]))
    return ",".join(merged)


class LeadCapability:
    def __init__(self, transport: TransportProtocol, settings: Optional[BulkSettings] = None):
        self.transport = transport
        self.settings = settings or BulkSettings()

    # =========================================================================
    # Single record operations
    # =========================================================================

    async def find_lead_by_email(
        self, email: str, fields: Optional[Sequence[str]] = None
    ) -> Body:
        return await self.find_lead_by_field("email", email, fields)

    async def find_lead_by_field(
        self, field: str, value: Any, fields: Optional[Sequence[str]] = None
    ) -> Body:
        params = {"filterType": field, "filterValues": str(value)}
        field_list = _merge_fields(fields)
        if field_list:
            params["fields"] = field_list
        return await self.transport.get("/v1/leads.json", params=params)

    async def describe_lead_fields(self) -> Body:
        return await self.transport.get("/v1/leads/describe.json")

    async def create_or_update_lead(
        self,
        lead: Body,
        partition_id: Optional[int] = None,
        action: str = "createOrUpdate",
    ) -> Body:
        body: Body = {"action": action, "lookupField": "email", "input": [lead]}
        if partition_id is not None:
            body["partitionName"] = await self.resolve_partition(partition_id)
        return await self.transport.post("/v1/leads.json", json_body=body)

    async def delete_lead_by_id(self, lead_id: Any) -> Body:
        return await self.transport.post(
            "/v1/leads.json",
            json_body={"input": [{"id": lead_id}]},
            params={"_method": "DELETE"},
        )

    async def merge_leads(self, winning_lead_id: Any, losing_lead_ids: Sequence[Any]) -> Body:
        return await self.transport.post(
            f"/v1/leads/{winning_lead_id}/merge.json",
            params={"leadIds": ",".join(str(i) for i in losing_lead_ids)},
        )

    async def associate_lead(self, lead_id: Any, cookie: str) -> Body:
        return await self.transport.post(
            f"/v1/leads/{lead_id}/associate.json", params={"cookie": cookie}
        )

    # =========================================================================
    # Partitions
    # =========================================================================

    async def get_lead_partitions(self) -> Body:
        return await self.transport.get("/v1/leads/partitions.json")

    async def resolve_partition(self, partition_id: Any) -> str:
        """Return the partition name for an id.

        Raises:
            PartitionNotFoundError: If no partition has that id
            MarketoApiError: If the partition list cannot be read
        """
        body = ensure_success(await self.get_lead_partitions())
        for partition in body.get("result") or []:
            if str(partition.get("id")) == str(partition_id):
                return partition["name"]
        logger.warning(
            "Lead partition not found",
            extra={"partition_id": str(partition_id)},
        )
        raise PartitionNotFoundError(partition_id)

    # =========================================================================
    # Bulk operations
    # =========================================================================

    async def bulk_create_or_update_leads(
        self, leads: Sequence[Body], partition_id: int = DEFAULT_PARTITION_ID
    ) -> list[BatchResult]:
        """Upsert leads by email in batches, all in one partition.

        The partition is resolved once, before any batch is built.
        """
        partition_name = await self.resolve_partition(partition_id)
        batches = chunk(leads, self.settings.lead_batch_size)

        async def send(batch: Batch) -> Body:
            return await self.transport.post(
                "/v1/leads.json",
                json_body={
                    "action": "createOrUpdate",
                    "lookupField": "email",
                    "partitionName": partition_name,
                    "input": list(batch.items),
                },
            )

        dispatcher = BatchDispatcher(
            DispatchMode(self.settings.dispatch_mode),
            self.settings.max_concurrency,
            operation_name="bulk_create_or_update_leads",
        )
        return await dispatcher.dispatch(batches, send)

    async def bulk_find_leads_by_email(
        self, emails: Sequence[str], fields: Optional[Sequence[str]] = None
    ) -> list[BatchResult]:
        return await self._bulk_find("email", emails, fields)

    async def bulk_find_leads_by_id(
        self, lead_ids: Sequence[Any], fields: Optional[Sequence[str]] = None
    ) -> list[BatchResult]:
        return await self._bulk_find("id", lead_ids, fields)

    async def find_leads_by_field(
        self, field: str, values: Sequence[Any], fields: Optional[Sequence[str]] = None
    ) -> Body:
        """Look up to one batch worth of values in a single call."""
        body: Body = {"filterType": field, "filterValues": [str(v) for v in values]}
        field_list = _merge_fields(fields)
        if field_list:
            body["fields"] = field_list.split(",")
        return await self.transport.post(
            "/v1/leads.json", json_body=body, params={"_method": "GET"}
        )

    async def _bulk_find(
        self, field: str, values: Sequence[Any], fields: Optional[Sequence[str]]
    ) -> list[BatchResult]:
        batches = chunk(values, self.settings.lead_lookup_batch_size)

        async def send(batch: Batch) -> Body:
            return await self.find_leads_by_field(field, batch.items, fields)

        dispatcher = BatchDispatcher(
            DispatchMode(self.settings.lookup_dispatch_mode),
            self.settings.max_concurrency,
            operation_name=f"bulk_find_leads_by_{field}",
        )
        return await dispatcher.dispatch(batches, send)


__all__ = [
    "DEFAULT_FIELDS",
    "DEFAULT_PARTITION_ID",
    "LeadCapability",
    "PartitionNotFoundError",
]
