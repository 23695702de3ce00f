"""Program and program member operations."""

import logging
from typing import Any, Optional, Sequence

from config.config import BulkSettings
from marketo.bulk.chunker import chunk
from marketo.bulk.dispatcher import BatchDispatcher
from marketo.bulk.models import Batch, BatchResult, DispatchMode
from marketo.capabilities.leads import LeadCapability
from marketo.capabilities.protocols import Body, TransportProtocol

logger = logging.getLogger(__name__)

LEAD_NOT_FOUND_CODE = "1004"


def _unresolved(email: str) -> Body:
    return {
        "leadId": None,
        "status": "skipped",
        "reasons": [
            {
                "code": LEAD_NOT_FOUND_CODE,
                "message": f"Couldn't find lead associated with {email}",
            }
        ],
    }


class ProgramCapability:
    """
    Program assets and membership.

    Bulk membership calls take emails; each batch first resolves its emails
    to lead ids through the lead capability, then sends only the resolved
    ids and merges the results back into email order.
    """

    def __init__(
        self,
        transport: TransportProtocol,
        leads: LeadCapability,
        settings: Optional[BulkSettings] = None,
    ):
        self.transport = transport
        self.leads = leads
        self.settings = settings or BulkSettings()

    # =========================================================================
    # Programs
    # =========================================================================

    async def create_program(self, program: Body) -> Body:
        return await self.transport.post("/asset/v1/programs.json", params=program)

    async def update_program(self, program_id: Any, updates: Body) -> Body:
        return await self.transport.post(
            f"/asset/v1/program/{program_id}.json", params=updates
        )

    async def get_programs(self) -> Body:
        return await self.transport.get("/asset/v1/programs.json")

    async def find_programs_by_name(self, name: str) -> Body:
        return await self.transport.get(
            "/asset/v1/program/byName.json",
            params={"name": name, "includeCosts": "true"},
        )

    async def find_program_by_id(self, program_id: Any) -> Body:
        return await self.transport.get(f"/asset/v1/program/{program_id}.json")

    async def delete_program(self, program_id: Any) -> Body:
        return await self.transport.post(f"/asset/v1/program/{program_id}/delete.json")

    # =========================================================================
    # Members
    # =========================================================================

    async def get_program_members(
        self,
        program_id: Any,
        filter_type: str,
        filter_values: Sequence[Any],
        fields: Optional[Sequence[str]] = None,
    ) -> Body:
        params = {
            "filterType": filter_type,
            "filterValues": ",".join(str(v) for v in filter_values),
        }
        if fields:
            params["fields"] = ",".join(fields)
        return await self.transport.get(
            f"/v1/programs/{program_id}/members.json", params=params
        )

    async def describe_program_members(self) -> Body:
        return await self.transport.get("/v1/programs/members/describe.json")

    async def set_program_member_status(
        self, program_id: Any, lead_ids: Sequence[Any], status: str
    ) -> Body:
        return await self.transport.post(
            f"/v1/programs/{program_id}/members/status.json",
            json_body={
                "statusName": status,
                "input": [{"leadId": lead_id} for lead_id in lead_ids],
            },
        )

    async def remove_program_members(self, program_id: Any, lead_ids: Sequence[Any]) -> Body:
        return await self.transport.post(
            f"/v1/programs/{program_id}/members/delete.json",
            json_body={"input": [{"leadId": lead_id} for lead_id in lead_ids]},
        )

    # =========================================================================
    # Bulk membership
    # =========================================================================

    async def bulk_set_program_member_status(
        self, program_id: Any, emails: Sequence[str], status: str
    ) -> list[BatchResult]:
        async def apply(lead_ids: list[Any]) -> Body:
            return await self.set_program_member_status(program_id, lead_ids, status)

        return await self._bulk_members(
            emails, apply, operation_name="bulk_set_program_member_status"
        )

    async def bulk_remove_program_members(
        self, program_id: Any, emails: Sequence[str]
    ) -> list[BatchResult]:
        async def apply(lead_ids: list[Any]) -> Body:
            return await self.remove_program_members(program_id, lead_ids)

        return await self._bulk_members(
            emails, apply, operation_name="bulk_remove_program_members"
        )

    async def _bulk_members(self, emails, apply, operation_name: str) -> list[BatchResult]:
        batches = chunk(emails, self.settings.program_member_batch_size)

        async def send(batch: Batch) -> Body:
            return await self._send_member_batch(batch, apply)

        dispatcher = BatchDispatcher(
            DispatchMode(self.settings.dispatch_mode),
            self.settings.max_concurrency,
            operation_name=operation_name,
        )
        return await dispatcher.dispatch(batches, send)

    async def _send_member_batch(self, batch: Batch, apply) -> Body:
        """Resolve emails, apply the membership change and realign results.

        Returns the upstream body unchanged when the membership call fails
        as a whole, so the batch is reported as failed.
        """
        lookup = await self.leads.find_leads_by_field("email", batch.items)
        if not lookup.get("success"):
            return lookup

        lead_ids_by_email = {
            str(lead.get("email", "")).lower(): lead.get("id")
            for lead in lookup.get("result") or []
        }
        resolved = [
            lead_ids_by_email.get(str(email).lower()) for email in batch.items
        ]
        lead_ids = [lead_id for lead_id in resolved if lead_id is not None]

        if lead_ids:
            body = await apply(lead_ids)
            if not body.get("success") or not isinstance(body.get("result"), list):
                return body
            upstream = list(body["result"])
        else:
            body = {"success": True}
            upstream = []

        merged: list[Optional[Body]] = []
        position = 0
        for email, lead_id in zip(batch.items, resolved):
            if lead_id is None:
                merged.append(_unresolved(email))
                continue
            if position >= len(upstream):
                # None holds the slot of a lead upstream never reported on
                merged.append(None)
                continue
            merged.append(upstream[position])
            position += 1

        unresolved_count = sum(1 for lead_id in resolved if lead_id is None)
        if unresolved_count:
            logger.debug(
                "Emails without a matching lead",
                extra={"batch_index": batch.index, "records_missing": unresolved_count},
            )
        return {**body, "success": True, "result": merged}


__all__ = ["ProgramCapability"]
