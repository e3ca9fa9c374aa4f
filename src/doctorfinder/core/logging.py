"""
Logging configuration.

The packaged `config/logging.yaml` is the baseline; the effective level comes from
settings (`DOCTORFINDER_LOG_LEVEL`) unless the caller passes an explicit one (CLI `--log-level`).
"""

from __future__ import annotations

import copy
import logging.config

from doctorfinder.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> str:
    """Apply the YAML logging config at `level` (or the configured level); return the level used."""
    effective = (level or get_settings().app.log_level).upper()
    if effective not in logging.getLevelNamesMapping():
        raise ValueError(f"Unknown log level: {effective!r}")

    # The cached YAML dict is shared, so we patch a copy.
    config = copy.deepcopy(get_logging_config())
    config.setdefault("root", {})["level"] = effective
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = effective

    logging.config.dictConfig(config)
    return effective
