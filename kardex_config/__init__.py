"""
kardex_config -- single public entrypoint for Kardex configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables.  Returns a frozen ``KardexConfig``.

Architecture position:
    Configuration -- sits above ``kardex_kernel`` and ``kardex_engines`` and
    below ``kardex_services``.  Engines MUST NEVER import from
    ``kardex_config``; services receive the config in their constructor.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``InvalidConfigurationError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``KARDEX_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each report to the configuration that produced it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from kardex_config.loader import load_config
from kardex_config.schema import KardexConfig

_logger = logging.getLogger("kardex.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> KardexConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Override path to a YAML configuration set.  Defaults to
            kardex_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        InvalidConfigurationError: If validation fails.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH
    config = load_config(config_path)

    _logger.info(
        "KARDEX_CONFIG_TRACE",
        extra={
            "trace_type": "KARDEX_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(config_path),
            "company_matcher_count": len(config.company_matchers),
            "alias_name_count": sum(len(v) for v in config.product_aliases.values()),
        },
    )
    return config


__all__ = ["KardexConfig", "get_active_config", "load_config"]
