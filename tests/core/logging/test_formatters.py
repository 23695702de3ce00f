"""Tests for JSON and console log formatters."""

import json
import logging
import sys

import pytest

from core.logging.context import clear_log_context, set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter


def _make_record(
    msg="test message",
    level=logging.INFO,
    name="test.logger",
    exc_info=None,
    **extras,
):
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extras.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def clear_context():
    clear_log_context()
    yield
    clear_log_context()


class TestJSONFormatter:
    def test_formats_basic_json_with_required_fields(self):
        output = json.loads(JSONFormatter().format(_make_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "test.logger"
        assert output["message"] == "test message"
        assert output["ts"].endswith("Z")

    def test_injects_context(self):
        set_log_context(scenario_id="scn-1", step="bulk-request-campaign")

        output = json.loads(JSONFormatter().format(_make_record()))

        assert output["scenario_id"] == "scn-1"
        assert output["step"] == "bulk-request-campaign"
        assert "requestor_id" not in output

    def test_includes_extra_fields(self):
        record = _make_record(batch_index=3, cache_key="Marketo|Lead|a|s:r", unknown_field="x")

        output = json.loads(JSONFormatter().format(record))

        assert output["batch_index"] == 3
        assert output["cache_key"] == "Marketo|Lead|a|s:r"
        assert "unknown_field" not in output

    def test_coerces_numeric_fields(self):
        output = json.loads(JSONFormatter().format(_make_record(http_status="503", batch_size="bad")))

        assert output["http_status"] == 503
        assert output["batch_size"] is None

    def test_redacts_secrets_in_urls(self):
        record = _make_record(
            api_url="https://x.mktorest.com/identity/oauth/token?client_id=a&client_secret=b&grant_type=client_credentials"
        )

        output = json.loads(JSONFormatter().format(record))

        assert "client_secret=[REDACTED]" in output["api_url"]
        assert "client_id=[REDACTED]" in output["api_url"]
        assert "grant_type=client_credentials" in output["api_url"]

    def test_source_location_only_for_debug_and_errors(self):
        info = json.loads(JSONFormatter().format(_make_record()))
        error = json.loads(JSONFormatter().format(_make_record(level=logging.ERROR)))

        assert "file" not in info
        assert error["file"] == "test.py:42"

    def test_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _make_record(level=logging.ERROR, exc_info=sys.exc_info())

        output = json.loads(JSONFormatter().format(record))

        assert output["exception"]["type"] == "ValueError"
        assert output["exception"]["message"] == "boom"
        assert "Traceback" in output["exception"]["stacktrace"]

    def test_serializes_non_json_values(self):
        output = json.loads(JSONFormatter().format(_make_record(lead_ids=(1, 2))))
        assert output["lead_ids"] == [1, 2]


class TestConsoleFormatter:
    @pytest.fixture
    def formatter(self):
        formatter = ConsoleFormatter()
        formatter._use_colors = False
        return formatter

    def test_plain_message(self, formatter):
        output = formatter.format(_make_record())
        assert output.endswith(" - INFO - test message")

    def test_includes_step_and_tags(self, formatter):
        set_log_context(scenario_id="abcdef123456", step="bulk-leads")

        output = formatter.format(_make_record(batch_index=2))

        assert "[bulk-leads]" in output
        assert "[abcdef12]" in output
        assert "[batch:2]" in output

    def test_colors_level_when_enabled(self):
        formatter = ConsoleFormatter()
        formatter._use_colors = True

        output = formatter.format(_make_record(level=logging.ERROR))

        assert "\033[31mERROR\033[0m" in output
