"""
Logging configuration.

We use a YAML logging config (`src/geofilter/config/logging.yaml`) and then apply
runtime overrides from settings (e.g., `GEOFILTER_LOG_LEVEL`).
"""

from __future__ import annotations

import logging.config

from geofilter.config.settings import Settings, get_logging_config, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the Python logging system based on packaged YAML config + settings."""
    settings = settings or get_settings()
    # dictConfig mutates nested dicts; keep the cached copy pristine.
    config = dict(get_logging_config())
    config["root"] = dict(config.get("root") or {})
    config["handlers"] = {k: dict(v) for k, v in (config.get("handlers") or {}).items()}

    level = settings.app.log_level.upper()
    config["root"]["level"] = level
    for handler in config["handlers"].values():
        if "level" in handler:
            handler["level"] = level

    logging.config.dictConfig(config)
