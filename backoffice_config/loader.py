"""
Configuration Loader (``backoffice_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into module configuration
dataclasses.  Runtime callers go through
``backoffice_config.get_active_config()`` instead of calling this
directly.

Architecture position
---------------------
**Config layer** -- sits above ``backoffice_modules``; nothing below it
imports from here.

Invariants enforced
-------------------
* Every parse failure surfaces as ``ConfigurationError`` naming the
  source and the offending key; no silent defaults for malformed values.
* Numeric YAML scalars become ``Decimal`` through their string form, so
  ``1.1`` in YAML is exactly ``Decimal("1.1")``.
* ``compute_checksum`` is a deterministic SHA-256 of the canonical JSON
  form of the raw document.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML or invalid values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from backoffice_config.schema import BackofficeConfiguration
from backoffice_kernel.exceptions import ConfigurationError
from backoffice_modules.consolidation.config import ConsolidationConfig
from backoffice_modules.revenue.config import RevenueConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigurationError: if the file is not valid YAML or its top
            level is not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def parse_decimal(value: Any, source: str, key: str) -> Decimal:
    """Parse a YAML scalar (str, int or float) into Decimal."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
        raise ConfigurationError(source, f"{key} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigurationError(source, f"{key} is not a number: {value!r}") from exc


def _section(data: dict[str, Any], name: str, source: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(source, f"{name} must be a mapping")
    return section


def parse_revenue_config(data: dict[str, Any], source: str) -> RevenueConfig:
    """Parse the ``revenue`` section into RevenueConfig."""
    kwargs: dict[str, Any] = {}
    if "counted_statuses" in data:
        statuses = data["counted_statuses"]
        if not isinstance(statuses, list):
            raise ConfigurationError(source, "revenue.counted_statuses must be a list")
        kwargs["counted_statuses"] = frozenset(statuses)
    try:
        return RevenueConfig(**kwargs)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(source, f"revenue: {exc}") from exc


def parse_consolidation_config(data: dict[str, Any], source: str) -> ConsolidationConfig:
    """Parse the ``consolidation`` section into ConsolidationConfig."""
    kwargs: dict[str, Any] = {}
    if "base_currency" in data:
        kwargs["base_currency"] = data["base_currency"]
    if "exchange_rates" in data:
        rates = data["exchange_rates"] or {}
        if not isinstance(rates, dict):
            raise ConfigurationError(source, "consolidation.exchange_rates must be a mapping")
        kwargs["exchange_rates"] = {
            str(code): parse_decimal(rate, source, f"consolidation.exchange_rates.{code}")
            for code, rate in rates.items()
        }
    try:
        return ConsolidationConfig(**kwargs)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(source, f"consolidation: {exc}") from exc


def parse_configuration(data: dict[str, Any], source: str) -> BackofficeConfiguration:
    """Parse a whole configuration document."""
    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise ConfigurationError(source, f"version must be an integer, got {version!r}")
    return BackofficeConfiguration(
        config_id=str(data.get("config_id", "default")),
        version=version,
        revenue=parse_revenue_config(_section(data, "revenue", source), source),
        consolidation=parse_consolidation_config(
            _section(data, "consolidation", source), source,
        ),
        checksum=compute_checksum(data),
        source=source,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 hex digest of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
