"""
BackofficeConfiguration schema.

The runtime artifact produced from a YAML configuration file: module
configs plus identity (config_id, version, checksum, source path).
"""

from __future__ import annotations

from dataclasses import dataclass

from backoffice_modules.consolidation.config import ConsolidationConfig
from backoffice_modules.revenue.config import RevenueConfig


@dataclass(frozen=True)
class BackofficeConfiguration:
    """Validated configuration for all back-office modules."""

    config_id: str
    version: int
    revenue: RevenueConfig
    consolidation: ConsolidationConfig
    checksum: str
    source: str
