"""Custom object operations."""

from typing import Any, Optional, Sequence

from marketo.capabilities.protocols import Body, TransportProtocol


class CustomObjectCapability:
    def __init__(self, transport: TransportProtocol):
        self.transport = transport

    async def get_custom_object(self, name: str) -> Body:
        """Describe a custom object type."""
        return await self.transport.get(f"/v1/customobjects/{name}/describe.json")

    async def query_custom_object(
        self,
        name: str,
        filter_type: str,
        filter_values: Sequence[Any],
        fields: Optional[Sequence[str]] = None,
    ) -> Body:
        body: Body = {
            "filterType": filter_type,
            "input": [{filter_type: value} for value in filter_values],
        }
        if fields:
            body["fields"] = list(fields)
        return await self.transport.post(
            f"/v1/customobjects/{name}.json", json_body=body, params={"_method": "GET"}
        )

    async def create_or_update_custom_object(self, name: str, record: Body) -> Body:
        return await self.transport.post(
            f"/v1/customobjects/{name}.json",
            json_body={
                "action": "createOrUpdate",
                "dedupeBy": "dedupeFields",
                "input": [record],
            },
        )

    async def delete_custom_object(self, name: str, record: Body) -> Body:
        return await self.transport.post(
            f"/v1/customobjects/{name}/delete.json",
            json_body={"deleteBy": "idField", "input": [record]},
        )


__all__ = ["CustomObjectCapability"]
