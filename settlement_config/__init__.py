"""
settlement_config -- single public entrypoint for settlement configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- YAML-driven settings.  Sits above ``settlement_kernel``
    and builds the module configuration schemas
    (``settlement_modules.invoice_payment.config``).

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``InvalidConfigurationError`` -- a value fails validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``SETTLEMENT_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

from pathlib import Path

from settlement_config.loader import (
    SettlementConfig,
    load_yaml_file,
    parse_settlement_config,
)
from settlement_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> SettlementConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a configuration YAML file.
            Defaults to settlement_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfigurationError: If a setting fails validation.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    config = parse_settlement_config(load_yaml_file(path))

    _logger.info(
        "SETTLEMENT_CONFIG_TRACE",
        extra={
            "trace_type": "SETTLEMENT_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
        },
    )
    return config


__all__ = ["SettlementConfig", "get_active_config"]
