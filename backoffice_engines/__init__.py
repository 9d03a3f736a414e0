"""
Module: backoffice_engines
Responsibility:
    Package entrypoint re-exporting the public symbols of the pure
    calculation engines.  Canonical import surface for backoffice_modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import backoffice_kernel.
    MUST NOT import backoffice_modules or backoffice_config.

Invariants enforced:
    - Purity: engines never read the clock; dates are explicit parameters.
    - Decimal-only arithmetic for every monetary amount.
    - Determinism: identical inputs always produce identical outputs.

Every engine entry point is wrapped in ``@traced_engine`` (see
``backoffice_engines.tracer``) and emits a BACKOFFICE_ENGINE_TRACE record.

Usage:
    from backoffice_engines import RevenueScheduleEngine, ConsolidationEngine
"""

from backoffice_engines.consolidation import (
    AppliedElimination,
    ConsolidatedFinancials,
    ConsolidatedReport,
    ConsolidationEngine,
    CurrencyConsolidation,
    EliminationType,
    Entity,
    EntityContribution,
    IntercompanyElimination,
    MinorityInterest,
    PeriodFinancials,
)
from backoffice_engines.revenue_schedule import (
    DEFAULT_COUNTED_STATUSES,
    Contract,
    ContractLimitValidation,
    ContractStatus,
    CumulativeCheck,
    Milestone,
    RecognitionMethod,
    RecognitionStatus,
    RevenueRecognitionEntry,
    RevenueSchedule,
    RevenueScheduleEngine,
    ScheduleLine,
)
from backoffice_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Revenue schedule
    "RevenueScheduleEngine",
    "Contract",
    "ContractStatus",
    "Milestone",
    "RecognitionMethod",
    "RecognitionStatus",
    "RevenueRecognitionEntry",
    "RevenueSchedule",
    "ScheduleLine",
    "CumulativeCheck",
    "ContractLimitValidation",
    "DEFAULT_COUNTED_STATUSES",
    # Consolidation
    "ConsolidationEngine",
    "Entity",
    "PeriodFinancials",
    "IntercompanyElimination",
    "EliminationType",
    "ConsolidatedReport",
    "ConsolidatedFinancials",
    "EntityContribution",
    "MinorityInterest",
    "AppliedElimination",
    "CurrencyConsolidation",
    # Tracing
    "traced_engine",
    "compute_input_fingerprint",
]
