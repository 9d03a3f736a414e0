"""
Module: backoffice_modules.revenue.helpers
Responsibility:
    Pure reporting calculations over recognition entries that the
    schedule engine does not cover:
    - Contract completion status (recognized, remaining, completion %)
    - Recognition summary by entry status
    - Deferred revenue analysis by period and by recognition method
    - Performance obligation tracking (completed, pending, overdue)

Architecture:
    backoffice_modules layer -- pure functions with ZERO I/O.  Called by
    RevenueRecognitionService; usable directly by reporting callers.

Invariants:
    - All monetary arithmetic uses Decimal.
    - Percentages are rounded to 2 places, half away from zero.
    - Reversed entries never count as recognized.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from backoffice_engines.revenue_schedule import (
    Contract,
    RecognitionStatus,
    RevenueRecognitionEntry,
)
from backoffice_kernel.domain.periods import Period

_TWO_PLACES = Decimal("0.01")
_ZERO = Decimal("0")


@dataclass(frozen=True)
class CompletionStatus:
    contract_id: str
    total_value: Decimal
    total_recognized: Decimal
    remaining: Decimal
    completion_percentage: Decimal
    is_fully_recognized: bool


@dataclass(frozen=True)
class RecognitionSummary:
    """Totals per entry status across a set of entries."""

    total_recognized: Decimal
    total_approved: Decimal
    total_pending: Decimal
    total_deferred: Decimal
    total_reversed: Decimal
    entry_count: int


@dataclass(frozen=True)
class DeferredRevenueAnalysis:
    total_deferred: Decimal
    by_period: dict[str, Decimal]
    by_method: dict[str, Decimal]
    entry_count: int


@dataclass(frozen=True)
class PerformanceObligationReport:
    """Entries split by delivery state as of a reporting date."""

    as_of_period: str
    completed: tuple[RevenueRecognitionEntry, ...]
    pending: tuple[RevenueRecognitionEntry, ...]
    overdue: tuple[RevenueRecognitionEntry, ...]

    @property
    def completed_amount(self) -> Decimal:
        return sum((e.recognized_amount for e in self.completed), _ZERO)

    @property
    def pending_amount(self) -> Decimal:
        return sum((e.recognized_amount for e in self.pending), _ZERO)

    @property
    def overdue_amount(self) -> Decimal:
        return sum((e.recognized_amount for e in self.overdue), _ZERO)


def contract_completion_status(
    contract: Contract,
    entries: Iterable[RevenueRecognitionEntry],
) -> CompletionStatus:
    """
    How much of ``contract`` has been recognized.

    Only entries of this contract in ``recognized`` status count.  The
    completion percentage is recognized / total_value * 100, rounded to 2
    places: 4000 of 24000 gives 16.67.
    """
    recognized = sum(
        (
            e.recognized_amount
            for e in entries
            if e.contract_id == contract.contract_id
            and e.status == RecognitionStatus.RECOGNIZED
        ),
        _ZERO,
    )
    pct = (recognized / contract.total_value * Decimal("100")).quantize(
        _TWO_PLACES, rounding=ROUND_HALF_UP,
    )
    return CompletionStatus(
        contract_id=contract.contract_id,
        total_value=contract.total_value,
        total_recognized=recognized,
        remaining=contract.total_value - recognized,
        completion_percentage=pct,
        is_fully_recognized=recognized >= contract.total_value,
    )


def recognition_summary(entries: Iterable[RevenueRecognitionEntry]) -> RecognitionSummary:
    totals = {status: _ZERO for status in RecognitionStatus}
    count = 0
    for entry in entries:
        totals[entry.status] += entry.recognized_amount
        count += 1
    return RecognitionSummary(
        total_recognized=totals[RecognitionStatus.RECOGNIZED],
        total_approved=totals[RecognitionStatus.APPROVED],
        total_pending=totals[RecognitionStatus.PENDING],
        total_deferred=totals[RecognitionStatus.DEFERRED],
        total_reversed=totals[RecognitionStatus.REVERSED],
        entry_count=count,
    )


def deferred_revenue_analysis(
    entries: Iterable[RevenueRecognitionEntry],
) -> DeferredRevenueAnalysis:
    """
    Break deferred entries down by period and by recognition method.

    Entries without a recognition method are grouped under "unspecified".
    Period keys are returned in chronological order.
    """
    by_period: dict[str, Decimal] = {}
    by_method: dict[str, Decimal] = {}
    total = _ZERO
    count = 0
    for entry in entries:
        if entry.status != RecognitionStatus.DEFERRED:
            continue
        method = entry.recognition_method.value if entry.recognition_method else "unspecified"
        by_period[entry.period] = by_period.get(entry.period, _ZERO) + entry.recognized_amount
        by_method[method] = by_method.get(method, _ZERO) + entry.recognized_amount
        total += entry.recognized_amount
        count += 1
    return DeferredRevenueAnalysis(
        total_deferred=total,
        by_period=dict(sorted(by_period.items())),
        by_method=by_method,
        entry_count=count,
    )


def performance_obligation_report(
    entries: Iterable[RevenueRecognitionEntry],
    as_of: date,
) -> PerformanceObligationReport:
    """
    Classify entries by whether their performance obligation is delivered.

    - completed: recognized, or flagged ``is_performance_complete``
    - overdue: not yet delivered and the entry's period ended before the
      period containing ``as_of``
    - pending: not yet delivered, period on or after ``as_of``

    Reversed entries are left out.
    """
    cutoff = Period.of(as_of)
    completed: list[RevenueRecognitionEntry] = []
    pending: list[RevenueRecognitionEntry] = []
    overdue: list[RevenueRecognitionEntry] = []
    for entry in entries:
        if entry.status == RecognitionStatus.REVERSED:
            continue
        if entry.status == RecognitionStatus.RECOGNIZED or entry.is_performance_complete:
            completed.append(entry)
        elif Period.parse(entry.period) < cutoff:
            overdue.append(entry)
        else:
            pending.append(entry)
    return PerformanceObligationReport(
        as_of_period=cutoff.code,
        completed=tuple(completed),
        pending=tuple(pending),
        overdue=tuple(overdue),
    )
