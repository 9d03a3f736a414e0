"""
Module: backoffice_modules.consolidation.config
Responsibility:
    Configuration schema for group consolidation: reporting (base)
    currency and standing exchange rates into it.

Architecture:
    backoffice_modules layer -- pure dataclass configuration schema.
    Consumed by ConsolidationService at construction time.

Invariants:
    - ``base_currency`` and every rate key are valid ISO 4217 codes.
    - Every rate is a positive Decimal.

Failure modes:
    - ValueError / TypeError on invalid values in __post_init__.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self

from backoffice_kernel.domain.currency import CurrencyRegistry
from backoffice_kernel.domain.values import to_decimal
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.consolidation.config")


@dataclass
class ConsolidationConfig:
    """
    Configuration schema for the consolidation module.

    Contract:
        Mutable dataclass (not frozen) so it can be loaded from YAML
        config.  Validated in ``__post_init__``.  Rates are stated as
        base-currency units per one unit of the keyed currency.
    """

    base_currency: str = "USD"

    exchange_rates: dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        self.base_currency = CurrencyRegistry.validate(self.base_currency)
        rates: dict[str, Decimal] = {}
        for code, rate in self.exchange_rates.items():
            normalized = CurrencyRegistry.validate(code)
            value = to_decimal(rate, f"exchange rate {normalized}")
            if value <= 0:
                raise ValueError(f"exchange rate for {normalized} must be positive")
            rates[normalized] = value
        self.exchange_rates = rates

        logger.info(
            "consolidation_config_initialized",
            extra={
                "base_currency": self.base_currency,
                "rate_currencies": sorted(self.exchange_rates),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """USD base currency, no standing rates."""
        return cls()
