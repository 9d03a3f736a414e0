"""
Module: backoffice_modules.revenue.service
Responsibility:
    Thin orchestration glue for revenue recognition.  Coordinates the
    schedule engine, the entry status workflow and the reporting helpers;
    contains no recognition arithmetic of its own.

Architecture:
    backoffice_modules layer -- stateless apart from its config and engine.
    Returns fresh immutable entries; persisting them is the caller's
    concern and concurrent writers resolve as last-write-wins.

    Dependency direction (strict):
        service.py  -->  backoffice_engines.revenue_schedule
        service.py  -->  backoffice_kernel (workflow, logging, exceptions)
        service.py  -X-> backoffice_config (FORBIDDEN)

Failure modes:
    - OverRecognitionError from ``record_entry`` when the ceiling would be
      exceeded.
    - InvalidStatusTransitionError from ``transition_status``.
    - OverRecognitionError from ``transition_status`` when re-counting a
      deferred entry would exceed the contract value.
    - Engine errors propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal

from backoffice_engines.revenue_schedule import (
    Contract,
    ContractLimitValidation,
    RecognitionStatus,
    RevenueRecognitionEntry,
    RevenueScheduleEngine,
)
from backoffice_kernel.domain.periods import Period
from backoffice_kernel.exceptions import InvalidStatusTransitionError
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_modules.revenue.config import RevenueConfig
from backoffice_modules.revenue.helpers import (
    CompletionStatus,
    PerformanceObligationReport,
    contract_completion_status,
    performance_obligation_report,
)
from backoffice_modules.revenue.workflows import RECOGNITION_ENTRY_WORKFLOW

logger = get_logger("modules.revenue.service")


class RevenueRecognitionService:
    """
    Orchestrates revenue recognition for contracts.

    Contract:
        Every public method is pure with respect to its inputs: entries
        passed in are never mutated, new entries are returned.
    Guarantees:
        - ``record_entry`` never returns an entry that would push counted
          recognition past the contract value.
        - ``transition_status`` only performs transitions declared in
          RECOGNITION_ENTRY_WORKFLOW, and never moves an entry into a
          counted status past the contract value.
    """

    def __init__(
        self,
        config: RevenueConfig | None = None,
        engine: RevenueScheduleEngine | None = None,
    ):
        self._config = config or RevenueConfig.with_defaults()
        self._engine = engine or RevenueScheduleEngine()

    @property
    def config(self) -> RevenueConfig:
        return self._config

    # =========================================================================
    # Schedule
    # =========================================================================

    def build_schedule_entries(
        self,
        contract: Contract,
        *,
        period_costs: Decimal | None = None,
        previously_recognized: Decimal = Decimal("0"),
        as_of: date | None = None,
    ) -> list[RevenueRecognitionEntry]:
        """
        Generate the contract's schedule as pending recognition entries.

        The entry for the final schedule line is flagged
        ``is_performance_complete`` when the schedule reaches 100%.
        """
        with LogContext.bind(contract_id=contract.contract_id):
            schedule = self._engine.generate_schedule(
                contract,
                period_costs=period_costs,
                previously_recognized=previously_recognized,
                as_of=as_of,
            )
            last = len(schedule.lines) - 1
            entries = [
                RevenueRecognitionEntry(
                    contract_id=contract.contract_id,
                    period=line.period,
                    recognized_amount=line.recognized_amount,
                    status=RecognitionStatus.PENDING,
                    is_performance_complete=(
                        index == last and line.completion_percentage >= Decimal("100")
                    ),
                    description=line.description,
                    recognition_method=schedule.method,
                )
                for index, line in enumerate(schedule.lines)
            ]
            logger.info("revenue_schedule_entries_built", extra={
                "entry_count": len(entries),
                "total": str(schedule.total),
                "method": schedule.method.value,
            })
            return entries

    # =========================================================================
    # Entries
    # =========================================================================

    def record_entry(
        self,
        contract: Contract,
        existing_entries: Sequence[RevenueRecognitionEntry],
        period: str,
        amount: Decimal,
        *,
        description: str = "",
        is_performance_complete: bool = False,
    ) -> RevenueRecognitionEntry:
        """
        Validate the ceiling and return a new pending entry.

        Raises:
            OverRecognitionError: If counted entries plus ``amount`` exceed
                the contract value.
            ValueError: If the period or amount is invalid.
        """
        with LogContext.bind(contract_id=contract.contract_id, period=period):
            entry = RevenueRecognitionEntry(
                contract_id=contract.contract_id,
                period=period,
                recognized_amount=amount,
                is_performance_complete=is_performance_complete,
                description=description,
                recognition_method=contract.recognition_method,
            )
            self._engine.validate_cumulative(
                contract,
                existing_entries,
                entry.recognized_amount,
                counted_statuses=self._config.counted_statuses,
            )
            logger.info("revenue_entry_recorded", extra={
                "amount": str(entry.recognized_amount),
            })
            return entry

    def transition_status(
        self,
        entry: RevenueRecognitionEntry,
        to_status: RecognitionStatus | str,
        *,
        contract: Contract | None = None,
        existing_entries: Sequence[RevenueRecognitionEntry] = (),
    ) -> RevenueRecognitionEntry:
        """
        Move ``entry`` to ``to_status`` along the entry workflow.

        When the move takes the entry from a status that does not count
        against the contract value into one that does (``deferred`` back
        to ``pending`` with the default config), the ceiling is re-checked
        against ``existing_entries`` and ``contract`` is required.

        Raises:
            InvalidStatusTransitionError: If the workflow has no such
                transition.
            OverRecognitionError: If re-counting the entry would exceed
                the contract value.
            ValueError: If the ceiling must be re-checked and no contract
                was given.
        """
        from_status = entry.status.value
        target = to_status.value if isinstance(to_status, RecognitionStatus) else str(to_status)
        transition = RECOGNITION_ENTRY_WORKFLOW.find_transition(from_status, target)
        if transition is None:
            logger.warning("revenue_entry_transition_rejected", extra={
                "contract_id": entry.contract_id,
                "from_status": from_status,
                "to_status": target,
                "allowed": list(RECOGNITION_ENTRY_WORKFLOW.allowed_targets(from_status)),
            })
            raise InvalidStatusTransitionError(
                from_status, target, workflow=RECOGNITION_ENTRY_WORKFLOW.name,
            )

        new_status = RecognitionStatus(target)
        counted = self._config.counted_statuses
        if new_status in counted and entry.status not in counted:
            if contract is None:
                raise ValueError(
                    f"contract is required to move an entry from {from_status} "
                    f"to {target}: the contract ceiling must be re-checked"
                )
            with LogContext.bind(contract_id=contract.contract_id, period=entry.period):
                self._engine.validate_cumulative(
                    contract,
                    existing_entries,
                    entry.recognized_amount,
                    counted_statuses=counted,
                )

        logger.info("revenue_entry_transitioned", extra={
            "contract_id": entry.contract_id,
            "entry_period": entry.period,
            "from_status": from_status,
            "to_status": target,
            "action": transition.action,
        })
        return replace(entry, status=new_status)

    def auto_recognize(
        self,
        entries: Sequence[RevenueRecognitionEntry],
        *,
        as_of: date | None = None,
        contract: Contract | None = None,
    ) -> list[RevenueRecognitionEntry]:
        """
        Recognize every entry whose performance obligation is complete.

        Pending and approved entries flagged ``is_performance_complete``
        are walked through the workflow (pending -> approved -> recognized).
        With ``as_of``, entries for later periods are left alone.  With
        ``contract``, only that contract's entries are processed and the
        ceiling is re-checked where the configuration requires it.

        Returns:
            The processed entries in their new ``recognized`` status, in
            input order.

        Raises:
            ValueError: If a step moves an entry into a counted status and
                no contract was given.
        """
        cutoff = Period.of(as_of) if as_of is not None else None
        current = list(entries)
        processed: list[RevenueRecognitionEntry] = []
        for index, entry in enumerate(current):
            if not entry.is_performance_complete:
                continue
            if entry.status not in (RecognitionStatus.PENDING, RecognitionStatus.APPROVED):
                continue
            if cutoff is not None and Period.parse(entry.period) > cutoff:
                continue
            if contract is not None and entry.contract_id != contract.contract_id:
                continue

            others = current[:index] + current[index + 1:]
            if entry.status == RecognitionStatus.PENDING:
                entry = self.transition_status(
                    entry, RecognitionStatus.APPROVED,
                    contract=contract, existing_entries=others,
                )
            entry = self.transition_status(
                entry, RecognitionStatus.RECOGNIZED,
                contract=contract, existing_entries=others,
            )
            current[index] = entry
            processed.append(entry)

        logger.info("revenue_entries_auto_recognized", extra={
            "processed_count": len(processed),
            "as_of_period": cutoff.code if cutoff is not None else None,
            "total": str(sum((e.recognized_amount for e in processed), Decimal("0"))),
        })
        return processed

    # =========================================================================
    # Queries
    # =========================================================================

    def validate_contract_limits(
        self,
        contract: Contract,
        entries: Sequence[RevenueRecognitionEntry],
    ) -> ContractLimitValidation:
        return self._engine.check_contract_limits(
            contract, entries, counted_statuses=self._config.counted_statuses,
        )

    def completion_status(
        self,
        contract: Contract,
        entries: Sequence[RevenueRecognitionEntry],
    ) -> CompletionStatus:
        return contract_completion_status(contract, entries)

    def performance_obligations(
        self,
        entries: Sequence[RevenueRecognitionEntry],
        as_of: date,
    ) -> PerformanceObligationReport:
        return performance_obligation_report(entries, as_of)
