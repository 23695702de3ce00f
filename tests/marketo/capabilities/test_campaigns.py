"""Tests for CampaignCapability."""

from unittest.mock import AsyncMock

from marketo.api_client import MarketoApiError
from marketo.capabilities.campaigns import (
    CAMPAIGN_PAGE_COUNT,
    CampaignCapability,
)


class TestGetCampaigns:
    async def test_pages_merged_and_sorted_case_insensitively(self, transport):
        pages = [{"success": True, "result": []} for _ in range(CAMPAIGN_PAGE_COUNT)]
        pages[0] = {"success": True, "result": [{"id": 2, "name": "beta"}, {"id": 3, "name": "Gamma"}]}
        pages[1] = {"success": True, "result": [{"id": 1, "name": "Alpha"}]}
        transport.get = AsyncMock(side_effect=pages)

        campaigns = await CampaignCapability(transport).get_campaigns()

        assert [c["name"] for c in campaigns] == ["Alpha", "beta", "Gamma"]
        assert transport.get.await_count == CAMPAIGN_PAGE_COUNT

    async def test_failed_page_is_skipped(self, transport):
        pages = [{"success": True, "result": []} for _ in range(CAMPAIGN_PAGE_COUNT)]
        pages[0] = {"success": True, "result": [{"id": 1, "name": "Only"}]}
        pages[3] = MarketoApiError("Server error (503)")
        transport.get = AsyncMock(side_effect=pages)

        campaigns = await CampaignCapability(transport).get_campaigns()

        assert campaigns == [{"id": 1, "name": "Only"}]


class TestBulkRequestCampaign:
    async def test_success_synthesizes_updated_per_lead(self, transport, settings):
        transport.post = AsyncMock(return_value={"success": True, "result": [{"id": 77}]})

        results = await CampaignCapability(transport, settings).bulk_request_campaign(
            77, [1, 2, 3]
        )

        assert len(results) == 2
        assert results[0].response["result"] == [
            {"id": 1, "status": "updated"},
            {"id": 2, "status": "updated"},
        ]
        first = transport.post.await_args_list[0]
        assert first.args[0] == "/v1/campaigns/77/trigger.json"
        assert first.kwargs["json_body"] == {"input": {"leads": [{"id": 1}, {"id": 2}]}}

    async def test_partial_failure_attributed_per_lead(self, transport, settings):
        transport.post = AsyncMock(
            return_value={
                "success": False,
                "errors": [{"code": "1004", "message": "Lead [2] not found"}],
            }
        )

        results = await CampaignCapability(transport, settings).bulk_request_campaign(77, [1, 2])

        result = results[0].response["result"]
        assert result[0] == {"id": 1, "status": "updated"}
        assert result[1]["status"] == "skipped"
        assert result[1]["reasons"][0]["message"] == "Lead 2 not found"

    async def test_request_campaign_raises_on_failure(self, transport):
        transport.post = AsyncMock(
            return_value={"success": False, "errors": [{"code": "1003", "message": "bad"}]}
        )

        try:
            await CampaignCapability(transport).request_campaign(77, [1])
        except MarketoApiError as e:
            assert e.error_codes == ["1003"]
        else:
            raise AssertionError("expected MarketoApiError")
