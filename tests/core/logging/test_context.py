"""Tests for core.logging.context module."""

from core.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)


class TestLogContext:
    def setup_method(self):
        clear_log_context()

    def teardown_method(self):
        clear_log_context()

    def test_defaults_are_empty(self):
        assert get_log_context() == {
            "scenario_id": "",
            "requestor_id": "",
            "request_id": "",
            "step": "",
        }

    def test_set_all_fields(self):
        set_log_context(
            scenario_id="scn-1",
            requestor_id="req-1",
            request_id="r-42",
            step="bulk-lead-create-or-update",
        )

        ctx = get_log_context()
        assert ctx["scenario_id"] == "scn-1"
        assert ctx["requestor_id"] == "req-1"
        assert ctx["request_id"] == "r-42"
        assert ctx["step"] == "bulk-lead-create-or-update"

    def test_partial_update_keeps_other_fields(self):
        set_log_context(scenario_id="scn-1", step="a")
        set_log_context(step="b")

        ctx = get_log_context()
        assert ctx["scenario_id"] == "scn-1"
        assert ctx["step"] == "b"

    def test_clear(self):
        set_log_context(scenario_id="scn-1")
        clear_log_context()
        assert get_log_context()["scenario_id"] == ""
