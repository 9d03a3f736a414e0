"""
backoffice_engines.revenue_schedule -- Contract revenue recognition schedules.

Responsibility:
    Turn a contract snapshot into an ordered revenue recognition schedule
    under one of four recognition methods, and check proposed recognition
    against the contract ceiling.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import backoffice_kernel (domain values, periods, exceptions,
    logging).  The entry status workflow lives in
    ``backoffice_modules.revenue.workflows``.

Invariants enforced:
    - Straight-line and milestone schedules sum exactly to the contract
      value: each line is rounded to 2 places (half away from zero) and the
      final line absorbs the remainder.
    - Milestone percentages are strictly increasing and end at 100.
    - Percentage-of-completion never recognizes past the contract value and
      never recognizes a negative amount.
    - Cumulative recognition (counted statuses only) never exceeds the
      contract value; the comparison is exact Decimal arithmetic.
    - Purity: no clock access; "as of" dates are passed in by the caller.

Failure modes:
    - InvalidMilestoneSequenceError for a bad milestone percentage series.
    - DivisionByZeroError for a zero cost estimate.
    - ContractNotCompleteError for completed-contract recognition on an
      open contract.
    - OverRecognitionError from ``validate_cumulative``.
    - ValueError for structurally invalid contracts, entries or arguments.

Usage:
    from backoffice_engines.revenue_schedule import (
        Contract, RecognitionMethod, RevenueScheduleEngine,
    )

    contract = Contract(
        contract_id="C-1",
        total_value=Decimal("24000"),
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        recognition_method=RecognitionMethod.STRAIGHT_LINE,
    )
    schedule = RevenueScheduleEngine().generate_schedule(contract)
    print(schedule.lines[0].recognized_amount)  # Decimal("2000.00")
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from backoffice_engines.tracer import traced_engine
from backoffice_kernel.domain.currency import CurrencyRegistry
from backoffice_kernel.domain.periods import (
    Period,
    months_between,
    period_range,
    validate_period_code,
)
from backoffice_kernel.domain.values import to_decimal
from backoffice_kernel.exceptions import (
    ContractNotCompleteError,
    DivisionByZeroError,
    InvalidMilestoneSequenceError,
    OverRecognitionError,
)
from backoffice_kernel.logging_config import get_logger

logger = get_logger("engines.revenue_schedule")

_TWO_PLACES = Decimal("0.01")
_HUNDRED = Decimal("100")
_ZERO = Decimal("0")


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


# ============================================================================
# Enums
# ============================================================================


class RecognitionMethod(str, Enum):
    """How contract revenue is spread across periods."""

    STRAIGHT_LINE = "straight_line"
    MILESTONE = "milestone"
    PERCENTAGE_OF_COMPLETION = "percentage_of_completion"
    COMPLETED_CONTRACT = "completed_contract"


class RecognitionStatus(str, Enum):
    """Lifecycle status of a single recognition entry."""

    PENDING = "pending"
    APPROVED = "approved"
    RECOGNIZED = "recognized"
    DEFERRED = "deferred"
    REVERSED = "reversed"


class ContractStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"


# Statuses whose amounts count against the contract ceiling.
DEFAULT_COUNTED_STATUSES: frozenset[RecognitionStatus] = frozenset({
    RecognitionStatus.PENDING,
    RecognitionStatus.APPROVED,
    RecognitionStatus.RECOGNIZED,
})


# ============================================================================
# Input data structures
# ============================================================================


@dataclass(frozen=True)
class Milestone:
    """
    A contract milestone.

    Attributes:
        description: What has to be delivered
        percentage: Cumulative completion percentage reached, in (0, 100]
        amount: Informational cumulative amount carried on the contract
        completion_date: When the milestone was met, if it has been
    """

    description: str
    percentage: Decimal
    amount: Decimal = _ZERO
    completion_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "percentage", to_decimal(self.percentage, "percentage"))
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))
        if not (_ZERO < self.percentage <= _HUNDRED):
            raise ValueError("milestone percentage must be greater than 0 and at most 100")
        if self.amount < 0:
            raise ValueError("milestone amount must be non-negative")


@dataclass(frozen=True)
class Contract:
    """
    Read-only contract snapshot.

    Attributes:
        contract_id: Contract identifier
        total_value: Contract value, the ceiling for cumulative recognition
        start_date: First day of performance
        end_date: Last day of performance (after start_date)
        recognition_method: How revenue is recognized
        milestones: Required for milestone recognition
        cost_estimate: Total estimated cost, required for percentage of completion
        status: Contract lifecycle status
        completion_date: Date the contract completed, if it has
        currency: ISO 4217 currency of total_value
    """

    contract_id: str
    total_value: Decimal
    start_date: date
    end_date: date
    recognition_method: RecognitionMethod
    milestones: tuple[Milestone, ...] = ()
    cost_estimate: Decimal | None = None
    status: ContractStatus = ContractStatus.ACTIVE
    completion_date: date | None = None
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not self.contract_id:
            raise ValueError("contract_id is required")
        object.__setattr__(self, "total_value", to_decimal(self.total_value, "total_value"))
        if self.total_value <= 0:
            raise ValueError("total_value must be positive")
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        object.__setattr__(self, "recognition_method", RecognitionMethod(self.recognition_method))
        object.__setattr__(self, "status", ContractStatus(self.status))
        object.__setattr__(self, "milestones", tuple(self.milestones))
        object.__setattr__(self, "currency", CurrencyRegistry.validate(self.currency))

        if self.recognition_method == RecognitionMethod.MILESTONE and not self.milestones:
            raise ValueError("milestones are required for milestone recognition")
        if self.recognition_method == RecognitionMethod.PERCENTAGE_OF_COMPLETION:
            if self.cost_estimate is None:
                raise ValueError(
                    "cost_estimate is required for percentage_of_completion recognition"
                )
        if self.cost_estimate is not None:
            object.__setattr__(
                self, "cost_estimate", to_decimal(self.cost_estimate, "cost_estimate"),
            )
            if self.cost_estimate < 0:
                raise ValueError("cost_estimate must be non-negative")


@dataclass(frozen=True)
class RevenueRecognitionEntry:
    """
    One period's recognized revenue for a contract.

    Produced by schedule generation and consumed again when validating
    cumulative recognition.
    """

    contract_id: str
    period: str
    recognized_amount: Decimal
    status: RecognitionStatus = RecognitionStatus.PENDING
    is_performance_complete: bool = False
    description: str = ""
    recognition_method: RecognitionMethod | None = None

    def __post_init__(self) -> None:
        if not self.contract_id:
            raise ValueError("contract_id is required")
        try:
            validate_period_code(self.period)
        except ValueError as exc:
            raise ValueError(f"Invalid period for recognition entry: {exc}") from exc
        object.__setattr__(
            self, "recognized_amount", to_decimal(self.recognized_amount, "recognized_amount"),
        )
        if self.recognized_amount < 0:
            raise ValueError("recognized_amount must be non-negative")
        object.__setattr__(self, "status", RecognitionStatus(self.status))
        if self.recognition_method is not None:
            object.__setattr__(
                self, "recognition_method", RecognitionMethod(self.recognition_method),
            )


# ============================================================================
# Output data structures
# ============================================================================


@dataclass(frozen=True)
class ScheduleLine:
    """A single period of a generated schedule."""

    period: str
    recognized_amount: Decimal
    description: str
    completion_percentage: Decimal


@dataclass(frozen=True)
class RevenueSchedule:
    """
    Ordered recognition schedule for one contract.

    ``total`` is the sum of the line amounts; for straight-line and
    milestone schedules it equals the contract value exactly.
    """

    contract_id: str
    method: RecognitionMethod
    lines: tuple[ScheduleLine, ...]
    total: Decimal
    completion_percentage: Decimal

    @property
    def periods(self) -> tuple[str, ...]:
        return tuple(line.period for line in self.lines)


@dataclass(frozen=True)
class CumulativeCheck:
    """Outcome of an accepted cumulative recognition check."""

    contract_id: str
    existing_total: Decimal
    new_amount: Decimal
    cumulative_total: Decimal
    remaining: Decimal


@dataclass(frozen=True)
class ContractLimitValidation:
    """Non-raising contract ceiling report."""

    contract_id: str
    is_valid: bool
    total_value: Decimal
    total_counted: Decimal
    over_recognition_amount: Decimal
    remaining: Decimal


# ============================================================================
# Engine
# ============================================================================


class RevenueScheduleEngine:
    """
    Pure calculator for revenue recognition schedules.

    Contract:
        No I/O, no database access, fully deterministic.  Inputs are never
        mutated; every call returns fresh immutable results.
    Guarantees:
        - ``generate_schedule`` dispatches on the contract's recognition
          method and returns lines in chronological order.
        - ``validate_cumulative`` raises OverRecognitionError exactly when
          counted existing entries plus the new amount exceed total_value.
        - ``check_contract_limits`` reports the same ceiling without raising.
    Non-goals:
        - Does not persist entries or enforce status transitions.
    """

    @traced_engine(
        "revenue_schedule", "1.0",
        fingerprint_fields=("contract", "period_costs", "previously_recognized", "as_of"),
    )
    def generate_schedule(
        self,
        contract: Contract,
        *,
        period_costs: Decimal | None = None,
        previously_recognized: Decimal = _ZERO,
        as_of: date | None = None,
    ) -> RevenueSchedule:
        """
        Build the recognition schedule for ``contract``.

        Args:
            contract: Contract snapshot
            period_costs: Cumulative costs incurred to date (percentage of
                completion only)
            previously_recognized: Revenue already recognized on the
                contract (percentage of completion clamp)
            as_of: Date the percentage-of-completion measurement applies to

        Returns:
            RevenueSchedule with lines in period order

        Raises:
            InvalidMilestoneSequenceError, DivisionByZeroError,
            ContractNotCompleteError, ValueError
        """
        t0 = time.monotonic()
        logger.info("revenue_schedule_started", extra={
            "contract_id": contract.contract_id,
            "recognition_method": contract.recognition_method.value,
            "total_value": str(contract.total_value),
        })

        method = contract.recognition_method
        if method == RecognitionMethod.STRAIGHT_LINE:
            lines = self._straight_line(contract)
        elif method == RecognitionMethod.MILESTONE:
            lines = self._milestone(contract)
        elif method == RecognitionMethod.PERCENTAGE_OF_COMPLETION:
            lines = self._percentage_of_completion(
                contract,
                period_costs=period_costs,
                previously_recognized=to_decimal(
                    previously_recognized, "previously_recognized",
                ),
                as_of=as_of,
            )
        else:
            lines = self._completed_contract(contract)

        total = sum((line.recognized_amount for line in lines), _ZERO)
        completion = max((line.completion_percentage for line in lines), default=_ZERO)

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("revenue_schedule_completed", extra={
            "contract_id": contract.contract_id,
            "line_count": len(lines),
            "total": str(total),
            "completion_percentage": str(completion),
            "duration_ms": duration_ms,
        })

        return RevenueSchedule(
            contract_id=contract.contract_id,
            method=method,
            lines=tuple(lines),
            total=total,
            completion_percentage=completion,
        )

    def _straight_line(self, contract: Contract) -> list[ScheduleLine]:
        periods = period_range(contract.start_date, contract.end_date)
        count = months_between(contract.start_date, contract.end_date)
        per_period = _round(contract.total_value / count)

        lines: list[ScheduleLine] = []
        allocated = _ZERO
        for index, period in enumerate(periods, start=1):
            if index == count:
                amount = contract.total_value - allocated
            else:
                amount = per_period
            allocated += amount
            lines.append(ScheduleLine(
                period=period,
                recognized_amount=amount,
                description=f"Straight-line recognition {index} of {count}",
                completion_percentage=_round(Decimal(index) * _HUNDRED / count),
            ))
        return lines

    def _milestone(self, contract: Contract) -> list[ScheduleLine]:
        percentages = [m.percentage for m in contract.milestones]
        self._check_milestone_sequence(contract.contract_id, percentages)

        end_period = Period.of(contract.end_date).code
        lines: list[ScheduleLine] = []
        allocated = _ZERO
        previous = _ZERO
        last_index = len(contract.milestones) - 1
        for index, milestone in enumerate(contract.milestones):
            if index == last_index:
                amount = contract.total_value - allocated
            else:
                amount = _round(
                    contract.total_value * (milestone.percentage - previous) / _HUNDRED
                )
            allocated += amount
            previous = milestone.percentage
            period = (
                Period.of(milestone.completion_date).code
                if milestone.completion_date is not None
                else end_period
            )
            lines.append(ScheduleLine(
                period=period,
                recognized_amount=amount,
                description=milestone.description,
                completion_percentage=milestone.percentage,
            ))
        lines.sort(key=lambda line: line.period)
        return lines

    def _check_milestone_sequence(
        self, contract_id: str, percentages: Sequence[Decimal],
    ) -> None:
        as_text = [str(p) for p in percentages]
        for earlier, later in zip(percentages, percentages[1:]):
            if later <= earlier:
                logger.warning("milestone_sequence_rejected", extra={
                    "contract_id": contract_id,
                    "percentages": as_text,
                    "reason": "not_increasing",
                })
                raise InvalidMilestoneSequenceError(
                    contract_id, as_text, "percentages must be strictly increasing",
                )
        if percentages[-1] != _HUNDRED:
            logger.warning("milestone_sequence_rejected", extra={
                "contract_id": contract_id,
                "percentages": as_text,
                "reason": "final_not_100",
            })
            raise InvalidMilestoneSequenceError(
                contract_id, as_text, "final milestone percentage must be 100",
            )

    def _percentage_of_completion(
        self,
        contract: Contract,
        *,
        period_costs: Decimal | None,
        previously_recognized: Decimal,
        as_of: date | None,
    ) -> list[ScheduleLine]:
        if period_costs is None:
            raise ValueError(
                "period_costs is required for percentage_of_completion recognition"
            )
        costs = to_decimal(period_costs, "period_costs")
        if costs < 0:
            raise ValueError("period_costs must be non-negative")
        if previously_recognized < 0:
            raise ValueError("previously_recognized must be non-negative")
        if contract.cost_estimate == 0:
            logger.warning("percentage_of_completion_zero_estimate", extra={
                "contract_id": contract.contract_id,
            })
            raise DivisionByZeroError(contract.contract_id)

        ratio = costs / contract.cost_estimate
        uncapped = contract.total_value * ratio
        ceiling = max(contract.total_value - previously_recognized, _ZERO)
        amount = _round(min(max(uncapped, _ZERO), ceiling))
        if uncapped > ceiling:
            logger.info("percentage_of_completion_clamped", extra={
                "contract_id": contract.contract_id,
                "uncapped_amount": str(uncapped),
                "clamped_amount": str(amount),
            })

        day = as_of if as_of is not None else contract.end_date
        completion = _round(ratio * _HUNDRED)
        return [ScheduleLine(
            period=Period.of(day).code,
            recognized_amount=amount,
            description=f"Percentage of completion at {completion}%",
            completion_percentage=completion,
        )]

    def _completed_contract(self, contract: Contract) -> list[ScheduleLine]:
        if contract.status != ContractStatus.COMPLETED:
            logger.warning("completed_contract_not_complete", extra={
                "contract_id": contract.contract_id,
                "status": contract.status.value,
            })
            raise ContractNotCompleteError(contract.contract_id, contract.status.value)
        day = contract.completion_date or contract.end_date
        return [ScheduleLine(
            period=Period.of(day).code,
            recognized_amount=contract.total_value,
            description="Completed contract recognition",
            completion_percentage=_HUNDRED,
        )]

    # ------------------------------------------------------------------
    # Ceiling checks
    # ------------------------------------------------------------------

    def _counted_total(
        self,
        contract: Contract,
        entries: Iterable[RevenueRecognitionEntry],
        counted_statuses: Iterable[RecognitionStatus],
    ) -> Decimal:
        counted = frozenset(RecognitionStatus(s) for s in counted_statuses)
        total = _ZERO
        for entry in entries:
            if entry.contract_id != contract.contract_id:
                logger.warning("recognition_entry_contract_mismatch", extra={
                    "contract_id": contract.contract_id,
                    "entry_contract_id": entry.contract_id,
                    "period": entry.period,
                })
                continue
            if entry.status in counted:
                total += entry.recognized_amount
        return total

    @traced_engine(
        "revenue_schedule", "1.0",
        fingerprint_fields=("contract", "existing_entries", "new_amount"),
    )
    def validate_cumulative(
        self,
        contract: Contract,
        existing_entries: Sequence[RevenueRecognitionEntry],
        new_amount: Decimal,
        *,
        counted_statuses: Iterable[RecognitionStatus] = DEFAULT_COUNTED_STATUSES,
    ) -> CumulativeCheck:
        """
        Check that recognizing ``new_amount`` keeps the contract within its value.

        Only entries of this contract in ``counted_statuses`` count; entries
        for other contracts are ignored (and logged).

        Raises:
            OverRecognitionError: If the cumulative total would exceed
                total_value.
            ValueError: If new_amount is negative.
        """
        amount = to_decimal(new_amount, "new_amount")
        if amount < 0:
            raise ValueError("new_amount must be non-negative")

        existing = self._counted_total(contract, existing_entries, counted_statuses)
        cumulative = existing + amount
        if cumulative > contract.total_value:
            over = cumulative - contract.total_value
            logger.warning("over_recognition_rejected", extra={
                "contract_id": contract.contract_id,
                "existing_total": str(existing),
                "new_amount": str(amount),
                "total_value": str(contract.total_value),
                "over_recognition_amount": str(over),
            })
            raise OverRecognitionError(
                contract_id=contract.contract_id,
                total_value=contract.total_value,
                attempted_total=cumulative,
                over_recognition_amount=over,
            )

        logger.info("cumulative_recognition_validated", extra={
            "contract_id": contract.contract_id,
            "cumulative_total": str(cumulative),
            "remaining": str(contract.total_value - cumulative),
        })
        return CumulativeCheck(
            contract_id=contract.contract_id,
            existing_total=existing,
            new_amount=amount,
            cumulative_total=cumulative,
            remaining=contract.total_value - cumulative,
        )

    @traced_engine("revenue_schedule", "1.0", fingerprint_fields=("contract", "entries"))
    def check_contract_limits(
        self,
        contract: Contract,
        entries: Sequence[RevenueRecognitionEntry],
        *,
        counted_statuses: Iterable[RecognitionStatus] = DEFAULT_COUNTED_STATUSES,
    ) -> ContractLimitValidation:
        """Report whether counted entries stay within the contract value."""
        counted = self._counted_total(contract, entries, counted_statuses)
        over = max(counted - contract.total_value, _ZERO)
        remaining = max(contract.total_value - counted, _ZERO)
        is_valid = over == _ZERO
        if not is_valid:
            logger.warning("contract_limit_exceeded", extra={
                "contract_id": contract.contract_id,
                "total_counted": str(counted),
                "over_recognition_amount": str(over),
            })
        return ContractLimitValidation(
            contract_id=contract.contract_id,
            is_valid=is_valid,
            total_value=contract.total_value,
            total_counted=counted,
            over_recognition_amount=over,
            remaining=remaining,
        )
