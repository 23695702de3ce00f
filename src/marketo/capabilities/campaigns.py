"""Smart campaign operations."""

import asyncio
import logging
from typing import Any, Optional, Sequence

from config.config import BulkSettings
from marketo.api_client import MarketoApiError, ensure_success
from marketo.bulk.chunker import chunk
from marketo.bulk.dispatcher import BatchDispatcher
from marketo.bulk.error_shapes import ErrorShapeParser, synthesize_success
from marketo.bulk.models import Batch, BatchResult, DispatchMode
from marketo.capabilities.protocols import Body, TransportProtocol

logger = logging.getLogger(__name__)

CAMPAIGN_PAGE_SIZE = 200
CAMPAIGN_PAGE_COUNT = 11


class CampaignCapability:
    def __init__(
        self,
        transport: TransportProtocol,
        settings: Optional[BulkSettings] = None,
        error_parser: Optional[ErrorShapeParser] = None,
    ):
        self.transport = transport
        self.settings = settings or BulkSettings()
        self.error_parser = error_parser or ErrorShapeParser(
            partial_failure_codes=self.settings.partial_failure_codes
        )

    async def get_campaign_page(self, offset: int, max_return: int = CAMPAIGN_PAGE_SIZE) -> Body:
        return await self.transport.get(
            "/v1/campaigns.json", params={"maxReturn": max_return, "offset": offset}
        )

    async def get_campaigns(self) -> list[Body]:
        """Fetch every campaign page concurrently, sorted by name ignoring case.

        A page that fails is logged and skipped.
        """
        offsets = [i * CAMPAIGN_PAGE_SIZE for i in range(CAMPAIGN_PAGE_COUNT)]
        pages = await asyncio.gather(
            *(self.get_campaign_page(offset) for offset in offsets),
            return_exceptions=True,
        )

        campaigns: list[Body] = []
        for offset, page in zip(offsets, pages):
            if isinstance(page, Exception):
                logger.warning(
                    "Campaign page request failed",
                    extra={"batch_index": offset // CAMPAIGN_PAGE_SIZE, "error_message": str(page)},
                )
                continue
            campaigns.extend(page.get("result") or [])

        campaigns.sort(key=lambda campaign: str(campaign.get("name", "")).lower())
        return campaigns

    async def request_campaign(
        self,
        campaign_id: Any,
        lead_ids: Sequence[Any],
        tokens: Optional[Sequence[Body]] = None,
    ) -> Body:
        """Add leads to a requestable smart campaign.

        Raises:
            MarketoApiError: If the call fails or returns ``success: false``
        """
        payload: Body = {"leads": [{"id": lead_id} for lead_id in lead_ids]}
        if tokens:
            payload["tokens"] = list(tokens)
        body = await self.transport.post(
            f"/v1/campaigns/{campaign_id}/trigger.json", json_body={"input": payload}
        )
        return ensure_success(body)

    async def bulk_request_campaign(
        self, campaign_id: Any, lead_ids: Sequence[Any]
    ) -> list[BatchResult]:
        """Request a campaign for many leads in small batches.

        A rejected batch is resolved into per-lead results by the error-shape
        parser, so partially failed batches still attribute each lead.
        """
        batches = chunk(lead_ids, self.settings.campaign_request_batch_size)
        context = {"campaign_id": str(campaign_id)}

        async def send(batch: Batch) -> Body:
            try:
                await self.request_campaign(campaign_id, batch.items)
            except MarketoApiError as e:
                logger.info(
                    "Campaign request rejected, resolving per lead",
                    extra={
                        **context,
                        "batch_index": batch.index,
                        "error_code": ",".join(e.error_codes),
                    },
                )
                return await self.error_parser.resolve(e, batch, context=context)
            return synthesize_success(batch)

        dispatcher = BatchDispatcher(
            DispatchMode(self.settings.dispatch_mode),
            self.settings.max_concurrency,
            operation_name="bulk_request_campaign",
        )
        return await dispatcher.dispatch(batches, send)


__all__ = ["CAMPAIGN_PAGE_COUNT", "CAMPAIGN_PAGE_SIZE", "CampaignCapability"]
