"""Marketo step configuration from YAML file.

Loads from config/config.yaml with all settings in one place:
- Marketo REST connection and credentials
- Scoped cache backend and TTL
- Bulk engine batch sizes, dispatch mode and partial-failure codes
- Operations alert webhook

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files,
and MARKETO_* variables override the connection settings directly.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from core.errors.exceptions import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        # Support both ${VAR} and ${VAR:-default} syntax
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "config.yaml"

DISPATCH_MODES = ["sequential", "parallel"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class BulkSettings:
    """Batch sizes and dispatch settings for the bulk engine.

    Batch sizes are the upstream per-call limits for each operation family.
    """

    lead_batch_size: int = 300
    lead_lookup_batch_size: int = 300
    program_member_batch_size: int = 300
    campaign_request_batch_size: int = 2
    dispatch_mode: str = "sequential"
    lookup_dispatch_mode: str = "parallel"
    max_concurrency: int = 5
    partial_failure_codes: List[str] = field(default_factory=lambda: ["1004"])


@dataclass
class LoggingSettings:
    """Where and how a step process logs."""

    level: str = "INFO"
    log_dir: str = "logs"
    json_format: bool = True
    log_to_stdout: bool = False


@dataclass
class MarketoConfig:
    """Marketo step configuration.

    Configuration structure:
        marketo:
          connection: {...}   # endpoint, client_id, client_secret, timeouts
          cache: {...}        # redis_url, ttl_seconds
          bulk: {...}         # batch sizes, dispatch mode, partial failure codes
          alerts: {...}       # webhook_url
          logging: {...}      # level, log_dir, json_format, log_to_stdout
    """

    # =========================================================================
    # CONNECTION SETTINGS
    # =========================================================================
    endpoint: str = ""
    client_id: str = ""
    client_secret: str = ""
    partner_id: str = ""
    timeout_seconds: int = 30
    max_concurrent_requests: int = 10

    # =========================================================================
    # CACHE SETTINGS
    # =========================================================================
    redis_url: str = ""
    cache_ttl_seconds: int = 600

    # =========================================================================
    # BULK ENGINE
    # =========================================================================
    bulk: BulkSettings = field(default_factory=BulkSettings)

    # =========================================================================
    # ALERTS
    # =========================================================================
    alert_webhook_url: str = ""

    # =========================================================================
    # LOGGING
    # =========================================================================
    logging_settings: LoggingSettings = field(default_factory=LoggingSettings)

    def validate(self) -> None:
        """Validate configuration for correctness and constraints.

        Raises:
            ConfigurationError: On a missing required field or an out of range value
        """
        for name in ("endpoint", "client_id", "client_secret"):
            if not getattr(self, name):
                raise ConfigurationError(
                    f"{name} is required in marketo.connection section"
                )

        if not self.endpoint.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"endpoint must start with http:// or https://, got: {self.endpoint!r}"
            )

        values = {
            "timeout_seconds": self.timeout_seconds,
            "max_concurrent_requests": self.max_concurrent_requests,
            "cache_ttl_seconds": self.cache_ttl_seconds,
        }
        self._validate_min(values, "timeout_seconds", 0, inclusive=False, context="connection")
        self._validate_min(values, "max_concurrent_requests", 1, inclusive=True, context="connection")
        self._validate_min(values, "cache_ttl_seconds", 1, inclusive=True, context="cache")
        self._validate_bulk_settings(self.bulk)
        self._validate_enum(
            {"level": self.logging_settings.level}, "level", LOG_LEVELS, "logging"
        )

    @staticmethod
    def _validate_enum(
        settings: Dict[str, Any],
        key: str,
        valid_values: List[Any],
        context: str
    ) -> None:
        """Validate that a setting's value is in a list of valid values."""
        if key in settings and settings[key] not in valid_values:
            raise ConfigurationError(
                f"{context}: {key} must be one of {valid_values}, "
                f"got '{settings[key]}'"
            )

    @staticmethod
    def _validate_min(
        settings: Dict[str, Any],
        key: str,
        min_value: float,
        inclusive: bool,
        context: str
    ) -> None:
        """Validate that a setting's value meets a minimum threshold."""
        if key in settings:
            value = settings[key]
            if inclusive and value < min_value:
                raise ConfigurationError(
                    f"{context}: {key} must be >= {min_value}, got {value}"
                )
            elif not inclusive and value <= min_value:
                raise ConfigurationError(
                    f"{context}: {key} must be > {min_value}, got {value}"
                )

    def _validate_bulk_settings(self, bulk: BulkSettings) -> None:
        settings = vars(bulk)
        for key in (
            "lead_batch_size",
            "lead_lookup_batch_size",
            "program_member_batch_size",
            "campaign_request_batch_size",
            "max_concurrency",
        ):
            self._validate_min(settings, key, 1, inclusive=True, context="bulk")
        self._validate_enum(settings, "dispatch_mode", DISPATCH_MODES, "bulk")
        self._validate_enum(settings, "lookup_dispatch_mode", DISPATCH_MODES, "bulk")


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_bulk_settings(bulk: Dict[str, Any]) -> BulkSettings:
    defaults = BulkSettings()
    codes = bulk.get("partial_failure_codes", defaults.partial_failure_codes)
    return BulkSettings(
        lead_batch_size=int(bulk.get("lead_batch_size", defaults.lead_batch_size)),
        lead_lookup_batch_size=int(
            bulk.get("lead_lookup_batch_size", defaults.lead_lookup_batch_size)
        ),
        program_member_batch_size=int(
            bulk.get("program_member_batch_size", defaults.program_member_batch_size)
        ),
        campaign_request_batch_size=int(
            bulk.get("campaign_request_batch_size", defaults.campaign_request_batch_size)
        ),
        dispatch_mode=str(bulk.get("dispatch_mode", defaults.dispatch_mode)).lower(),
        lookup_dispatch_mode=str(
            bulk.get("lookup_dispatch_mode", defaults.lookup_dispatch_mode)
        ).lower(),
        max_concurrency=int(bulk.get("max_concurrency", defaults.max_concurrency)),
        partial_failure_codes=[str(code) for code in codes],
    )


def _env_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _load_logging_settings(section: Dict[str, Any]) -> LoggingSettings:
    defaults = LoggingSettings()
    return LoggingSettings(
        level=str(
            os.getenv("MARKETO_LOG_LEVEL") or section.get("level", defaults.level)
        ).upper(),
        log_dir=str(section.get("log_dir") or defaults.log_dir),
        json_format=_env_flag(section.get("json_format", defaults.json_format)),
        log_to_stdout=_env_flag(
            os.getenv("MARKETO_LOG_TO_STDOUT")
            or section.get("log_to_stdout", defaults.log_to_stdout)
        ),
    )


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> MarketoConfig:
    """Load Marketo configuration from config.yaml file.

    Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
    MARKETO_ENDPOINT, MARKETO_CLIENT_ID, MARKETO_CLIENT_SECRET, MARKETO_REDIS_URL
    and MARKETO_ALERT_WEBHOOK_URL take priority over the file.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n" f"Expected file: config/config.yaml"
        )

    logger.info(f"Loading configuration from file: {config_path}")
    yaml_data = load_yaml(config_path)
    yaml_data = _expand_env_vars(yaml_data)

    if "marketo" not in yaml_data:
        raise ConfigurationError(
            "Invalid config file: missing 'marketo:' section"
        )

    marketo_config = yaml_data["marketo"] or {}

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        marketo_config = _deep_merge(marketo_config, overrides)

    connection = marketo_config.get("connection", {})
    cache = marketo_config.get("cache", {})
    alerts = marketo_config.get("alerts", {})

    client_secret = os.getenv("MARKETO_CLIENT_SECRET") or connection.get("client_secret", "")
    if not client_secret:
        logger.warning("Marketo client secret not configured")
    else:
        logger.info("Marketo API authentication configured")

    config = MarketoConfig(
        endpoint=(os.getenv("MARKETO_ENDPOINT") or connection.get("endpoint", "")).rstrip("/"),
        client_id=os.getenv("MARKETO_CLIENT_ID") or connection.get("client_id", ""),
        client_secret=client_secret,
        partner_id=os.getenv("MARKETO_PARTNER_ID") or connection.get("partner_id", ""),
        timeout_seconds=int(
            os.getenv("MARKETO_TIMEOUT_SECONDS") or connection.get("timeout_seconds", 30)
        ),
        max_concurrent_requests=int(
            os.getenv("MARKETO_MAX_CONCURRENT") or connection.get("max_concurrent", 10)
        ),
        redis_url=os.getenv("MARKETO_REDIS_URL") or cache.get("redis_url", ""),
        cache_ttl_seconds=int(cache.get("ttl_seconds", 600)),
        bulk=_load_bulk_settings(marketo_config.get("bulk", {})),
        alert_webhook_url=(
            os.getenv("MARKETO_ALERT_WEBHOOK_URL") or alerts.get("webhook_url", "")
        ),
        logging_settings=_load_logging_settings(marketo_config.get("logging", {})),
    )

    logger.debug("Configuration loaded successfully:")
    logger.debug(f"  - Endpoint: {config.endpoint}")
    logger.debug(f"  - Cache backend: {'redis' if config.redis_url else 'in-memory'}")
    logger.debug(f"  - Dispatch mode: {config.bulk.dispatch_mode}")

    logger.debug("Validating configuration...")
    config.validate()
    logger.debug("Configuration validation passed")

    return config


_marketo_config: Optional[MarketoConfig] = None


def get_config() -> MarketoConfig:
    """Get or load the singleton Marketo config instance."""
    global _marketo_config
    if _marketo_config is None:
        _marketo_config = load_config()
    return _marketo_config


def set_config(config: MarketoConfig) -> None:
    """Set the singleton Marketo config instance (useful for testing)."""
    global _marketo_config
    _marketo_config = config


def reset_config() -> None:
    """Reset the singleton config instance (forces reload on next get_config() call)."""
    global _marketo_config
    _marketo_config = None
