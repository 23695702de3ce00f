"""Tests for ProgramCapability bulk membership."""

from unittest.mock import AsyncMock

from marketo.capabilities.leads import LeadCapability
from marketo.capabilities.programs import ProgramCapability


def _program_capability(transport, settings):
    return ProgramCapability(transport, LeadCapability(transport, settings), settings)


class TestSendMemberBatch:
    async def test_unresolved_emails_are_skipped_in_place(self, transport, settings):
        lookup = {
            "success": True,
            "result": [
                {"id": 11, "email": "a@example.com"},
                {"id": 33, "email": "C@example.com"},
            ],
        }
        status_body = {
            "success": True,
            "result": [
                {"leadId": 11, "status": "updated"},
                {"leadId": 33, "status": "created"},
            ],
        }
        transport.post = AsyncMock(side_effect=[lookup, status_body])

        results = await _program_capability(transport, settings).bulk_set_program_member_status(
            1001, ["a@example.com", "b@example.com", "c@example.com"], "Registered"
        )

        result = results[0].response["result"]
        assert [item["status"] for item in result] == ["updated", "skipped", "created"]
        assert result[1]["reasons"][0] == {
            "code": "1004",
            "message": "Couldn't find lead associated with b@example.com",
        }
        status_call = transport.post.await_args_list[1]
        assert status_call.args[0] == "/v1/programs/1001/members/status.json"
        assert status_call.kwargs["json_body"] == {
            "statusName": "Registered",
            "input": [{"leadId": 11}, {"leadId": 33}],
        }

    async def test_no_resolved_leads_skips_membership_call(self, transport, settings):
        transport.post = AsyncMock(return_value={"success": True, "result": []})

        results = await _program_capability(transport, settings).bulk_remove_program_members(
            1001, ["nobody@example.com"]
        )

        assert transport.post.await_count == 1
        assert results[0].response["result"][0]["status"] == "skipped"

    async def test_short_upstream_result_leaves_rest_unreported(self, transport, settings):
        lookup = {
            "success": True,
            "result": [
                {"id": 1, "email": "a@example.com"},
                {"id": 2, "email": "b@example.com"},
            ],
        }
        remove_body = {"success": True, "result": [{"leadId": 1, "status": "deleted"}]}
        transport.post = AsyncMock(side_effect=[lookup, remove_body])

        results = await _program_capability(transport, settings).bulk_remove_program_members(
            1001, ["a@example.com", "b@example.com"]
        )

        assert results[0].response["result"] == [{"leadId": 1, "status": "deleted"}, None]

    async def test_unresolved_email_after_short_upstream_result_is_still_skipped(
        self, transport, settings
    ):
        lookup = {
            "success": True,
            "result": [
                {"id": 1, "email": "a@example.com"},
                {"id": 2, "email": "b@example.com"},
            ],
        }
        remove_body = {"success": True, "result": [{"leadId": 1, "status": "deleted"}]}
        transport.post = AsyncMock(side_effect=[lookup, remove_body])

        results = await _program_capability(transport, settings).bulk_remove_program_members(
            1001, ["a@example.com", "b@example.com", "c@example.com"]
        )

        result = results[0].response["result"]
        assert len(result) == 3
        assert result[1] is None
        assert result[2]["status"] == "skipped"
        assert result[2]["reasons"][0]["message"] == (
            "Couldn't find lead associated with c@example.com"
        )

    async def test_failed_lookup_fails_the_batch(self, transport, settings):
        transport.post = AsyncMock(
            return_value={"success": False, "errors": [{"code": "606", "message": "Rate limit"}]}
        )

        results = await _program_capability(transport, settings).bulk_remove_program_members(
            1001, ["a@example.com"]
        )

        assert not results[0].succeeded
        assert results[0].failure_message == "Rate limit"
