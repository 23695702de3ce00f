"""Activity log and API usage reads."""

from typing import Any, Sequence

from marketo.capabilities.protocols import Body, TransportProtocol


class ActivityCapability:
    def __init__(self, transport: TransportProtocol):
        self.transport = transport

    async def get_activity_types(self) -> Body:
        return await self.transport.get("/v1/activities/types.json")

    async def get_activity_paging_token(self, since_datetime: str) -> Body:
        return await self.transport.get(
            "/v1/activities/pagingtoken.json", params={"sinceDatetime": since_datetime}
        )

    async def get_activities(
        self,
        next_page_token: str,
        lead_ids: Sequence[Any],
        activity_type_ids: Sequence[Any],
    ) -> Body:
        return await self.transport.get(
            "/v1/activities.json",
            params={
                "nextPageToken": next_page_token,
                "leadIds": ",".join(str(i) for i in lead_ids),
                "activityTypeIds": ",".join(str(i) for i in activity_type_ids),
            },
        )

    async def get_daily_api_usage(self) -> Body:
        return await self.transport.get("/v1/stats/usage.json")

    async def get_weekly_api_usage(self) -> Body:
        return await self.transport.get("/v1/stats/usage/last7days.json")


__all__ = ["ActivityCapability"]
