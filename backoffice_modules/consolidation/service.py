"""
Module: backoffice_modules.consolidation.service
Responsibility:
    Thin orchestration glue for group consolidation.  Fills in the base
    currency and exchange rates from configuration, binds log context and
    delegates the calculation to ConsolidationEngine.

Architecture:
    backoffice_modules layer -- stateless apart from its config and engine.

    Dependency direction (strict):
        service.py  -->  backoffice_engines.consolidation
        service.py  -->  backoffice_kernel (logging)
        service.py  -X-> backoffice_config (FORBIDDEN)

Failure modes:
    - Engine errors (CircularOwnershipError, MissingExchangeRateError,
      ValueError) propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal

from backoffice_engines.consolidation import (
    ConsolidatedReport,
    ConsolidationEngine,
    Entity,
    IntercompanyElimination,
    PeriodFinancials,
)
from backoffice_kernel.domain.currency import CurrencyRegistry
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_modules.consolidation.config import ConsolidationConfig

logger = get_logger("modules.consolidation.service")


class ConsolidationService:
    """
    Runs consolidations with configured defaults.

    Explicit rates passed to ``consolidate`` override the standing rates
    from configuration currency by currency.  Standing rates are only used
    when consolidating into the configured base currency; any other base
    needs every rate passed explicitly.
    """

    def __init__(
        self,
        config: ConsolidationConfig | None = None,
        engine: ConsolidationEngine | None = None,
    ):
        self._config = config or ConsolidationConfig.with_defaults()
        self._engine = engine or ConsolidationEngine()

    @property
    def config(self) -> ConsolidationConfig:
        return self._config

    def consolidate(
        self,
        entities: Sequence[Entity],
        period_financials: Sequence[PeriodFinancials],
        period: str,
        *,
        eliminations: Sequence[IntercompanyElimination] = (),
        exchange_rates: Mapping[str, Decimal] | None = None,
        base_currency: str | None = None,
        consolidation_date: date | None = None,
    ) -> ConsolidatedReport:
        base = (
            CurrencyRegistry.validate(base_currency) if base_currency
            else self._config.base_currency
        )
        # Standing rates are quoted against the configured base only.
        if base == self._config.base_currency:
            rates = dict(self._config.exchange_rates)
        else:
            rates = {}
        if exchange_rates:
            rates.update({code.upper(): rate for code, rate in exchange_rates.items()})

        with LogContext.bind(period=period):
            logger.info("consolidation_requested", extra={
                "base_currency": base,
                "entity_count": len(entities),
                "rate_currencies": sorted(rates),
            })
            return self._engine.consolidate(
                entities,
                period_financials,
                eliminations,
                rates,
                base,
                period,
                consolidation_date=consolidation_date,
            )
