"""
backoffice_config -- single public entrypoint for back-office configuration.

Responsibility:
    Provides the one way to obtain configuration at runtime through
    ``get_active_config()``.  Engines and modules never read files or
    environment variables themselves; they receive config objects.

Architecture position:
    Configuration -- sits above ``backoffice_modules`` and
    ``backoffice_kernel``.  Neither of them imports from here.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ConfigurationError`` -- malformed YAML or invalid values.

Every successful ``get_active_config()`` call emits a
``BACKOFFICE_CONFIG_TRACE`` log entry with the config id, version,
checksum and source.
"""

from __future__ import annotations

import logging
from pathlib import Path

from backoffice_config.loader import load_yaml_file, parse_configuration
from backoffice_config.schema import BackofficeConfiguration

_logger = logging.getLogger("backoffice_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "BackofficeConfiguration",
    "get_active_config",
]


def get_active_config(path: Path | str | None = None) -> BackofficeConfiguration:
    """The public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the bundled
            ``backoffice_config/sets/default.yaml``.

    Returns:
        BackofficeConfiguration with validated module configs.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the content is malformed.
    """
    source = Path(path) if path is not None else _DEFAULT_CONFIG_FILE
    data = load_yaml_file(source)
    config = parse_configuration(data, str(source))

    _logger.info(
        "BACKOFFICE_CONFIG_TRACE",
        extra={
            "trace_type": "BACKOFFICE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": config.source,
            "base_currency": config.consolidation.base_currency,
            "counted_statuses": sorted(s.value for s in config.revenue.counted_statuses),
        },
    )
    return config
