"""Configuration loading for the Marketo step core.

Configuration is loaded from ``config/config.yaml`` next to this package.

Main Functions
--------------

    - load_config(): Load Marketo configuration from YAML
    - get_config(): Get or load singleton config instance
    - set_config(): Install a config instance (tests)
    - reset_config(): Reset singleton config instance

Usage Examples
--------------

    >>> from config import get_config
    >>>
    >>> config = get_config()
    >>> config.bulk.lead_batch_size
    300

Custom config path:
    >>> from pathlib import Path
    >>> config = load_config(config_path=Path("/custom/path/config.yaml"))

Configuration Priority
---------------------

Settings are merged in the following priority (highest to lowest):

1. MARKETO_* environment variables
2. YAML configuration file (with ${VAR} expansion)
3. Dataclass defaults
"""

from config.config import (
    BulkSettings,
    LoggingSettings,
    MarketoConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
)

__all__ = [
    "load_config",
    "get_config",
    "set_config",
    "reset_config",
    "MarketoConfig",
    "BulkSettings",
    "LoggingSettings",
]
