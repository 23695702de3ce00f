"""Static list operations."""

from typing import Any, Sequence

from marketo.capabilities.protocols import Body, TransportProtocol

MEMBER_PAGE_SIZE = 300


class StaticListCapability:
    def __init__(self, transport: TransportProtocol):
        self.transport = transport

    async def find_static_lists_by_name(self, name: str) -> Body:
        return await self.transport.get(
            "/asset/v1/staticList/byName.json", params={"name": name}
        )

    async def find_static_lists_by_id(self, list_id: Any) -> Body:
        return await self.transport.get(f"/asset/v1/staticList/{list_id}.json")

    async def get_static_list_members(self, list_id: Any) -> Body:
        return await self.transport.get(
            f"/v1/lists/{list_id}/leads.json", params={"batchSize": MEMBER_PAGE_SIZE}
        )

    async def add_leads_to_static_list(self, list_id: Any, lead_ids: Sequence[Any]) -> Body:
        return await self.transport.post(
            f"/v1/lists/{list_id}/leads.json",
            params=[("id", str(lead_id)) for lead_id in lead_ids],
        )

    async def remove_leads_from_static_list(self, list_id: Any, lead_ids: Sequence[Any]) -> Body:
        return await self.transport.delete(
            f"/v1/lists/{list_id}/leads.json",
            params=[("id", str(lead_id)) for lead_id in lead_ids],
        )


__all__ = ["StaticListCapability"]
