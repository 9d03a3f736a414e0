"""
backoffice_engines.consolidation -- Multi-entity financial consolidation.

Responsibility:
    Combine the period financials of a group of legal entities into one
    report in a base currency: ownership-cycle check, entity filtering,
    currency translation, aggregation, intercompany eliminations and
    minority (non-controlling) interests.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import backoffice_kernel (domain values, periods, exceptions,
    logging).  Consumed by ``backoffice_modules.consolidation.service``.

Invariants enforced:
    - Parent chains terminate; a revisit raises CircularOwnershipError
      before anything else is computed.
    - Entities with consolidated=False or zero ownership contribute nothing.
    - Every included entity's currency has a rate (same currency is 1).
    - Figures already in the base currency pass through unchanged;
      converted figures and minority interests are rounded to 2 places,
      half away from zero.
    - Every elimination passed in appears in the report, applied or skipped
      with a reason.
    - Net income is revenue minus expenses after eliminations.

Failure modes:
    - CircularOwnershipError for a cyclic parent chain.
    - MissingExchangeRateError for an included entity without a rate.
    - ValueError for duplicate financials or malformed inputs.

Usage:
    from backoffice_engines.consolidation import ConsolidationEngine

    report = ConsolidationEngine().consolidate(
        entities=entities,
        period_financials=financials,
        eliminations=eliminations,
        exchange_rates={"EUR": Decimal("1.10")},
        base_currency="USD",
        period="2024-03",
    )
    print(report.consolidated_financials.net_income)
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from backoffice_engines.tracer import traced_engine
from backoffice_kernel.domain.currency import CurrencyRegistry
from backoffice_kernel.domain.periods import validate_period_code
from backoffice_kernel.domain.values import ExchangeRate, Money, to_decimal
from backoffice_kernel.exceptions import (
    CircularOwnershipError,
    MissingExchangeRateError,
)
from backoffice_kernel.logging_config import get_logger

logger = get_logger("engines.consolidation")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_TWO_PLACES = Decimal("0.01")

_FIGURES = ("revenue", "expenses", "assets", "liabilities", "equity")


class EliminationType(str, Enum):
    """Which consolidated figure an intercompany elimination reduces."""

    REVENUE = "revenue"
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"


# Elimination type -> consolidated bucket.
_BUCKETS: dict[EliminationType, str] = {
    EliminationType.REVENUE: "revenue",
    EliminationType.ASSET: "assets",
    EliminationType.LIABILITY: "liabilities",
    EliminationType.EQUITY: "equity",
}


# ============================================================================
# Input data structures
# ============================================================================


@dataclass(frozen=True)
class Entity:
    """
    A legal entity in the group.

    Attributes:
        entity_id: Entity identifier
        ownership_percent: Parent's ownership, 0 to 100
        currency: Functional currency (ISO 4217)
        consolidated: Whether the entity takes part in consolidation
        parent_entity_id: Owning entity, None for the top of the group
        name: Display name
    """

    entity_id: str
    ownership_percent: Decimal
    currency: str
    consolidated: bool = True
    parent_entity_id: str | None = None
    name: str = ""

    def __post_init__(self) -> None:
        if not self.entity_id:
            raise ValueError("entity_id is required")
        object.__setattr__(
            self, "ownership_percent", to_decimal(self.ownership_percent, "ownership_percent"),
        )
        if not (_ZERO <= self.ownership_percent <= _HUNDRED):
            raise ValueError("ownership_percent must be between 0 and 100")
        object.__setattr__(self, "currency", CurrencyRegistry.validate(self.currency))


@dataclass(frozen=True)
class PeriodFinancials:
    """An entity's figures for one period, in its functional currency."""

    entity_id: str
    period: str
    revenue: Decimal = _ZERO
    expenses: Decimal = _ZERO
    assets: Decimal = _ZERO
    liabilities: Decimal = _ZERO
    equity: Decimal = _ZERO

    def __post_init__(self) -> None:
        if not self.entity_id:
            raise ValueError("entity_id is required")
        validate_period_code(self.period)
        for name in _FIGURES:
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))


@dataclass(frozen=True)
class IntercompanyElimination:
    """
    An intercompany balance to remove from the consolidated figures.

    ``amount`` is stated in the eliminating entity's currency unless
    ``exchange_rate`` is given, in which case it is translated with that
    rate instead of the entity's.
    """

    affected_entities: tuple[str, ...]
    amount: Decimal
    elimination_type: EliminationType
    description: str = ""
    eliminating_entity_id: str | None = None
    exchange_rate: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "affected_entities", tuple(self.affected_entities))
        if len(self.affected_entities) < 2:
            raise ValueError("an elimination must affect at least two entities")
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))
        if self.amount <= 0:
            raise ValueError("elimination amount must be positive")
        object.__setattr__(self, "elimination_type", EliminationType(self.elimination_type))
        if self.eliminating_entity_id is None:
            object.__setattr__(self, "eliminating_entity_id", self.affected_entities[0])
        elif self.eliminating_entity_id not in self.affected_entities:
            raise ValueError("eliminating_entity_id must be one of affected_entities")
        if self.exchange_rate is not None:
            object.__setattr__(
                self, "exchange_rate", to_decimal(self.exchange_rate, "exchange_rate"),
            )
            if self.exchange_rate <= 0:
                raise ValueError("exchange_rate must be positive")


# ============================================================================
# Output data structures
# ============================================================================


@dataclass(frozen=True)
class ConsolidatedFinancials:
    revenue: Decimal
    expenses: Decimal
    net_income: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    equity: Decimal


@dataclass(frozen=True)
class EntityContribution:
    """One included entity's figures translated into the base currency."""

    entity_id: str
    currency: str
    exchange_rate: Decimal
    revenue: Decimal
    expenses: Decimal
    assets: Decimal
    liabilities: Decimal
    equity: Decimal


@dataclass(frozen=True)
class MinorityInterest:
    entity_id: str
    minority_share: Decimal
    amount: Decimal


@dataclass(frozen=True)
class AppliedElimination:
    """An elimination as it was treated in the run.

    ``converted_amount`` is None when the elimination was skipped.
    """

    elimination: IntercompanyElimination
    converted_amount: Decimal | None
    skipped: bool = False
    skip_reason: str | None = None


@dataclass(frozen=True)
class CurrencyConsolidation:
    base_currency: str
    exchange_rates: dict[str, Decimal] = field(default_factory=dict)
    consolidation_date: date | None = None


@dataclass(frozen=True)
class ConsolidatedReport:
    """Result of a consolidation run."""

    base_currency: str
    period: str
    entities: tuple[str, ...]
    excluded_entities: tuple[str, ...]
    consolidated_financials: ConsolidatedFinancials
    contributions: tuple[EntityContribution, ...]
    minority_interests: tuple[MinorityInterest, ...]
    eliminations_applied: tuple[AppliedElimination, ...]
    currency_consolidation: CurrencyConsolidation

    @property
    def total_minority_interest(self) -> Decimal:
        return sum((mi.amount for mi in self.minority_interests), _ZERO)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation; Decimals and dates become strings."""
        fin = self.consolidated_financials
        cc = self.currency_consolidation
        return {
            "base_currency": self.base_currency,
            "period": self.period,
            "entities": list(self.entities),
            "excluded_entities": list(self.excluded_entities),
            "consolidated_financials": {
                "revenue": str(fin.revenue),
                "expenses": str(fin.expenses),
                "net_income": str(fin.net_income),
                "total_assets": str(fin.total_assets),
                "total_liabilities": str(fin.total_liabilities),
                "equity": str(fin.equity),
            },
            "minority_interests": [
                {
                    "entity_id": mi.entity_id,
                    "minority_share": str(mi.minority_share),
                    "amount": str(mi.amount),
                }
                for mi in self.minority_interests
            ],
            "total_minority_interest": str(self.total_minority_interest),
            "eliminations_applied": [
                {
                    "affected_entities": list(ae.elimination.affected_entities),
                    "elimination_type": ae.elimination.elimination_type.value,
                    "description": ae.elimination.description,
                    "amount": str(ae.elimination.amount),
                    "converted_amount": (
                        str(ae.converted_amount) if ae.converted_amount is not None else None
                    ),
                    "skipped": ae.skipped,
                    "skip_reason": ae.skip_reason,
                }
                for ae in self.eliminations_applied
            ],
            "currency_consolidation": {
                "base_currency": cc.base_currency,
                "exchange_rates": {k: str(v) for k, v in sorted(cc.exchange_rates.items())},
                "consolidation_date": (
                    cc.consolidation_date.isoformat() if cc.consolidation_date else None
                ),
            },
        }


# ============================================================================
# Engine
# ============================================================================


class ConsolidationEngine:
    """
    Pure calculator for group consolidation.

    Contract:
        No I/O, fully deterministic.  Exchange rates and the consolidation
        date are passed in; the engine never looks them up.
    Guarantees:
        - Included entities keep their input order in the report.
        - Eliminations keep their input order and are never dropped.
    Non-goals:
        - Does not apply translation differences (CTA) or equity-method
          accounting for excluded entities.
    """

    @traced_engine(
        "consolidation", "1.0",
        fingerprint_fields=(
            "entities", "period_financials", "eliminations",
            "exchange_rates", "base_currency", "period",
        ),
    )
    def consolidate(
        self,
        entities: Sequence[Entity],
        period_financials: Sequence[PeriodFinancials],
        eliminations: Sequence[IntercompanyElimination],
        exchange_rates: Mapping[str, Decimal],
        base_currency: str,
        period: str,
        *,
        consolidation_date: date | None = None,
    ) -> ConsolidatedReport:
        """
        Consolidate ``entities`` for ``period`` into ``base_currency``.

        Args:
            entities: Group entities
            period_financials: Figures per entity (missing entities count as zero)
            eliminations: Intercompany balances to remove
            exchange_rates: Base-currency units per one unit of each currency
            base_currency: Reporting currency
            period: Period code (YYYY-MM)
            consolidation_date: Rate date, reported back unchanged

        Returns:
            ConsolidatedReport

        Raises:
            CircularOwnershipError, MissingExchangeRateError, ValueError
        """
        t0 = time.monotonic()
        base = CurrencyRegistry.validate(base_currency)
        validate_period_code(period)
        logger.info("consolidation_started", extra={
            "base_currency": base,
            "period": period,
            "entity_count": len(entities),
            "elimination_count": len(eliminations),
        })

        self._check_ownership_cycles(entities)

        included = [e for e in entities if e.consolidated and e.ownership_percent > 0]
        included_ids = {e.entity_id for e in included}
        excluded = tuple(e.entity_id for e in entities if e.entity_id not in included_ids)
        if excluded:
            logger.info("consolidation_entities_excluded", extra={
                "excluded_entities": list(excluded),
            })

        rates = self._resolve_rates(included, exchange_rates, base)
        financials = self._index_financials(period_financials, period)

        contributions: list[EntityContribution] = []
        totals = {name: _ZERO for name in _FIGURES}
        for entity in included:
            rate = rates[entity.currency]
            source = financials.get(entity.entity_id)
            converted = {
                name: self._translate(
                    getattr(source, name) if source is not None else _ZERO,
                    rate,
                )
                for name in _FIGURES
            }
            for name in _FIGURES:
                totals[name] += converted[name]
            contributions.append(EntityContribution(
                entity_id=entity.entity_id,
                currency=entity.currency,
                exchange_rate=rate.rate,
                **converted,
            ))

        by_id = {e.entity_id: e for e in entities}
        applied: list[AppliedElimination] = []
        for elimination in eliminations:
            outcome = self._apply_elimination(elimination, by_id, included_ids, rates, base)
            if not outcome.skipped:
                totals[_BUCKETS[elimination.elimination_type]] -= outcome.converted_amount
            applied.append(outcome)

        minority = self._minority_interests(included, included_ids, contributions)

        consolidated = ConsolidatedFinancials(
            revenue=totals["revenue"],
            expenses=totals["expenses"],
            net_income=totals["revenue"] - totals["expenses"],
            total_assets=totals["assets"],
            total_liabilities=totals["liabilities"],
            equity=totals["equity"],
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("consolidation_completed", extra={
            "base_currency": base,
            "period": period,
            "included_count": len(included),
            "excluded_count": len(excluded),
            "eliminations_applied": sum(1 for a in applied if not a.skipped),
            "eliminations_skipped": sum(1 for a in applied if a.skipped),
            "net_income": str(consolidated.net_income),
            "duration_ms": duration_ms,
        })

        return ConsolidatedReport(
            base_currency=base,
            period=period,
            entities=tuple(e.entity_id for e in included),
            excluded_entities=excluded,
            consolidated_financials=consolidated,
            contributions=tuple(contributions),
            minority_interests=tuple(minority),
            eliminations_applied=tuple(applied),
            currency_consolidation=CurrencyConsolidation(
                base_currency=base,
                exchange_rates={code: rate.rate for code, rate in rates.items()},
                consolidation_date=consolidation_date,
            ),
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _check_ownership_cycles(self, entities: Sequence[Entity]) -> None:
        parents = {e.entity_id: e.parent_entity_id for e in entities}
        for entity in entities:
            chain = [entity.entity_id]
            current = entity.parent_entity_id
            while current is not None and current in parents:
                if current in chain:
                    chain.append(current)
                    logger.error("consolidation_circular_ownership", extra={
                        "entity_id": current,
                        "chain": chain,
                    })
                    raise CircularOwnershipError(current, chain)
                chain.append(current)
                current = parents[current]

    def _resolve_rates(
        self,
        included: Sequence[Entity],
        exchange_rates: Mapping[str, Decimal],
        base: str,
    ) -> dict[str, ExchangeRate]:
        rates: dict[str, ExchangeRate] = {}
        for entity in included:
            code = entity.currency
            if code in rates:
                continue
            if code == base:
                rates[code] = ExchangeRate.identity(base)
                continue
            if code not in exchange_rates:
                logger.error("consolidation_missing_rate", extra={
                    "currency": code,
                    "base_currency": base,
                    "entity_id": entity.entity_id,
                })
                raise MissingExchangeRateError(code, base, entity.entity_id)
            rates[code] = ExchangeRate.of(code, base, exchange_rates[code])
        return rates

    def _index_financials(
        self,
        period_financials: Sequence[PeriodFinancials],
        period: str,
    ) -> dict[str, PeriodFinancials]:
        seen: set[tuple[str, str]] = set()
        for pf in period_financials:
            key = (pf.entity_id, pf.period)
            if key in seen:
                raise ValueError(
                    f"Duplicate financials for entity {pf.entity_id} in period {pf.period}"
                )
            seen.add(key)

        indexed: dict[str, PeriodFinancials] = {}
        for pf in period_financials:
            if pf.period != period:
                logger.debug("consolidation_financials_other_period", extra={
                    "entity_id": pf.entity_id,
                    "financials_period": pf.period,
                })
                continue
            indexed[pf.entity_id] = pf
        return indexed

    def _translate(self, amount: Decimal, rate: ExchangeRate) -> Decimal:
        if rate.from_currency == rate.to_currency:
            return amount
        converted = rate.convert(Money.of(amount, rate.from_currency)).amount
        return converted.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)

    def _apply_elimination(
        self,
        elimination: IntercompanyElimination,
        by_id: Mapping[str, Entity],
        included_ids: set[str],
        rates: Mapping[str, ExchangeRate],
        base: str,
    ) -> AppliedElimination:
        missing = [eid for eid in elimination.affected_entities if eid not in included_ids]
        if missing:
            reason = (
                "entities not included in consolidation: " + ", ".join(missing)
            )
            logger.warning("consolidation_elimination_skipped", extra={
                "affected_entities": list(elimination.affected_entities),
                "elimination_type": elimination.elimination_type.value,
                "reason": reason,
            })
            return AppliedElimination(
                elimination=elimination,
                converted_amount=None,
                skipped=True,
                skip_reason=reason,
            )

        eliminating = by_id[elimination.eliminating_entity_id]
        if elimination.exchange_rate is not None:
            rate = ExchangeRate.of(eliminating.currency, base, elimination.exchange_rate)
        else:
            rate = rates[eliminating.currency]
        converted = self._translate(elimination.amount, rate)
        logger.info("consolidation_elimination_applied", extra={
            "affected_entities": list(elimination.affected_entities),
            "elimination_type": elimination.elimination_type.value,
            "converted_amount": str(converted),
        })
        return AppliedElimination(elimination=elimination, converted_amount=converted)

    def _minority_interests(
        self,
        included: Sequence[Entity],
        included_ids: set[str],
        contributions: Sequence[EntityContribution],
    ) -> list[MinorityInterest]:
        by_entity = {c.entity_id: c for c in contributions}
        interests: list[MinorityInterest] = []
        for entity in included:
            if entity.ownership_percent >= _HUNDRED:
                continue
            if entity.parent_entity_id not in included_ids:
                continue
            share = _HUNDRED - entity.ownership_percent
            contribution = by_entity[entity.entity_id]
            net_assets = contribution.assets - contribution.liabilities
            amount = (share / _HUNDRED * net_assets).quantize(
                _TWO_PLACES, rounding=ROUND_HALF_UP,
            )
            interests.append(MinorityInterest(
                entity_id=entity.entity_id,
                minority_share=share,
                amount=amount,
            ))
        return interests
