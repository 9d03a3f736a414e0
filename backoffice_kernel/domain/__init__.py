"""
Pure domain layer.

Value objects and state-machine types with NO dependencies on:
- Database
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from backoffice_kernel.domain.currency import CurrencyRegistry
from backoffice_kernel.domain.periods import (
    Period,
    months_between,
    period_range,
    validate_period_code,
)
from backoffice_kernel.domain.values import Currency, ExchangeRate, Money, to_decimal
from backoffice_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Currency",
    "CurrencyRegistry",
    "ExchangeRate",
    "Guard",
    "Money",
    "Period",
    "Transition",
    "Workflow",
    "months_between",
    "period_range",
    "to_decimal",
    "validate_period_code",
]
