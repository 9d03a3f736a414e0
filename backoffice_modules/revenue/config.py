"""
Module: backoffice_modules.revenue.config
Responsibility:
    Configuration schema for the revenue recognition module: which entry
    statuses count against the contract ceiling.

Architecture:
    backoffice_modules layer -- pure dataclass configuration schema.
    Consumed by RevenueRecognitionService at construction time; loaded
    from YAML by ``backoffice_config``.

Invariants:
    - ``counted_statuses`` is non-empty and never contains ``reversed``.

Failure modes:
    - ValueError on invalid values in __post_init__.
"""

from dataclasses import dataclass, field
from typing import Self

from backoffice_engines.revenue_schedule import DEFAULT_COUNTED_STATUSES, RecognitionStatus
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.revenue.config")


@dataclass
class RevenueConfig:
    """
    Configuration schema for the revenue recognition module.

    Contract:
        Mutable dataclass (not frozen) so it can be loaded from YAML
        config.  Validated in ``__post_init__``.
    """

    counted_statuses: frozenset[RecognitionStatus] = field(
        default_factory=lambda: DEFAULT_COUNTED_STATUSES,
    )

    def __post_init__(self):
        self.counted_statuses = frozenset(
            RecognitionStatus(s) for s in self.counted_statuses
        )
        if not self.counted_statuses:
            raise ValueError("counted_statuses cannot be empty")
        if RecognitionStatus.REVERSED in self.counted_statuses:
            raise ValueError("reversed entries cannot count against the contract value")

        logger.info(
            "revenue_config_initialized",
            extra={
                "counted_statuses": sorted(s.value for s in self.counted_statuses),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard counted statuses."""
        return cls()
