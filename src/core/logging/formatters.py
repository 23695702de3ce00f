"""Log formatters for JSON and console output."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context
from core.utils.json_serializers import json_serializer


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs to remove access tokens before logging.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Correlation
        "scope",
        "batch_index",
        "duration_ms",
        # HTTP
        "http_status",
        "api_endpoint",
        "api_method",
        "api_url",
        "request_id",
        "timeout_seconds",
        "max_concurrent",
        # Errors
        "error_category",
        "error_message",
        "error_code",
        "error_type",
        "is_retryable",
        "api_errors",
        "response_body",
        # Bulk processing
        "operation",
        "batch_size",
        "batch_count",
        "dispatch_mode",
        "records_total",
        "records_processed",
        "records_found",
        "records_created",
        "records_updated",
        "records_deleted",
        "records_failed",
        "records_missing",
        "returned_count",
        "reconciliation_status",
        "unattributed_count",
        # Cache
        "cache_key",
        "cache_discriminator",
        "cache_hit",
        "keys_invalidated",
        "ttl_seconds",
        # Identifiers
        "partition_id",
        "program_id",
        "campaign_id",
        "list_id",
        "custom_object",
        "lead_ids",
        # Alerts
        "alert_subject",
        "sub_error",
    ]

    # Type mapping for numeric fields so they are not serialized as strings
    NUMERIC_FIELDS = {
        "duration_ms": float,
        "http_status": int,
        "batch_index": int,
        "batch_size": int,
        "batch_count": int,
        "records_total": int,
        "records_processed": int,
        "records_found": int,
        "records_created": int,
        "records_updated": int,
        "records_deleted": int,
        "records_failed": int,
        "records_missing": int,
        "returned_count": int,
        "unattributed_count": int,
        "keys_invalidated": int,
        "ttl_seconds": int,
        "timeout_seconds": int,
        "max_concurrent": int,
    }

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["api_url", "url"]

    # Pattern to match sensitive query parameters
    SENSITIVE_PARAMS_PATTERN = re.compile(
        r"([?&])(access_token|client_secret|client_id|token|secret)=[^&]*",
        re.IGNORECASE,
    )

    def _sanitize_url(self, url: str) -> str:
        return self.SENSITIVE_PARAMS_PATTERN.sub(r"\1\2=[REDACTED]", url)

    def _sanitize_value(self, key: str, value: Any) -> Any:
        if key in self.URL_FIELDS and isinstance(value, str):
            return self._sanitize_url(value)
        return value

    def _ensure_type(self, field: str, value: Any) -> Any:
        """
        Coerce known numeric fields to their expected type.

        Returns None when conversion fails so a bad value never breaks the
        log line.
        """
        if field not in self.NUMERIC_FIELDS or value is None:
            return value

        expected_type = self.NUMERIC_FIELDS[field]
        try:
            return expected_type(value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _base_log_entry(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    @staticmethod
    def _inject_context(log_entry: dict[str, Any], log_context: dict[str, Any]) -> None:
        for field in ("scenario_id", "requestor_id", "request_id", "step"):
            if log_context.get(field):
                log_entry[field] = log_context[field]

    @staticmethod
    def _should_include_source_location(record: logging.LogRecord) -> bool:
        return record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL)

    def _inject_extra_fields(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                typed_value = self._ensure_type(field, value)
                log_entry[field] = self._sanitize_value(field, typed_value)

    def _inject_exception(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        if not record.exc_info:
            return

        exc_type, exc_value, _ = record.exc_info
        log_entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "stacktrace": self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        log_entry = self._base_log_entry(record)

        self._inject_context(log_entry, get_log_context())

        if self._should_include_source_location(record):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        # Type validation must happen before sanitization
        self._inject_extra_fields(log_entry, record)
        self._inject_exception(log_entry, record)

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with color-coded log levels.

    Colors are auto-disabled when output is not a TTY (pipes, files).
    """

    # ANSI color codes
    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _format_level_name(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        if not self._use_colors:
            return level_name

        color = self.COLORS.get(record.levelno, "")
        if not color:
            return level_name

        return f"{color}{level_name}{self.RESET}"

    @staticmethod
    def _build_prefix(level_name: str, log_context: dict[str, Any]) -> str:
        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            level_name,
        ]

        if log_context.get("step"):
            parts.append(f"[{log_context['step']}]")

        return " - ".join(parts)

    @staticmethod
    def _build_tags(record: logging.LogRecord, log_context: dict[str, Any]) -> list[str]:
        scenario_id = getattr(record, "scenario_id", None) or log_context.get("scenario_id")
        request_id = getattr(record, "request_id", None) or log_context.get("request_id")
        batch_index = getattr(record, "batch_index", None)

        tags = []
        if scenario_id:
            tags.append(f"[{scenario_id[:8]}]")
        if request_id:
            tags.append(f"[req:{request_id[:8]}]")
        if batch_index is not None:
            tags.append(f"[batch:{batch_index}]")
        return tags

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output with optional color coding."""
        log_context = get_log_context()

        level_name = self._format_level_name(record)
        prefix = self._build_prefix(level_name, log_context)
        tags = self._build_tags(record, log_context)

        if tags:
            return f"{prefix} - {' '.join(tags)} {record.getMessage()}"

        return f"{prefix} - {record.getMessage()}"
