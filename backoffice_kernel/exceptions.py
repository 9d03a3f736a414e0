"""
Typed Exception Hierarchy for the Back-office Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every calculation failure is a normal, recoverable outcome for the caller:
reject the request, surface a validation message, answer with a 4xx.  The
caller must be able to tell failures apart without parsing message strings,
so:

  1. Every error has its own exception class (catch by type, not message)
  2. Every class has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA as attributes

Example:

    try:
        engine.validate_cumulative(contract, entries, new_amount)
    except OverRecognitionError as e:
        return {
            "error": e.code,
            "overRecognitionAmount": str(e.over_recognition_amount),
        }

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BackofficeError (base)
    |
    +-- RevenueRecognitionError
    |   +-- InvalidMilestoneSequenceError
    |   +-- DivisionByZeroError
    |   +-- ContractNotCompleteError
    |   +-- OverRecognitionError
    |   +-- InvalidStatusTransitionError
    |
    +-- ConsolidationError
    |   +-- MissingExchangeRateError
    |   +-- CircularOwnershipError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Revenue         | INVALID_MILESTONE_SEQUENCE  | Milestone % not strictly increasing / final != 100
                | DIVISION_BY_ZERO            | Percentage-of-completion with zero cost estimate
                | CONTRACT_NOT_COMPLETE       | Completed-contract recognition before completion
                | OVER_RECOGNITION            | Cumulative recognition exceeds contract value
                | INVALID_STATUS_TRANSITION   | Entry status change not in the workflow
----------------|-----------------------------|-----------------------------------------
Consolidation   | MISSING_EXCHANGE_RATE       | Included entity currency has no rate
                | CIRCULAR_OWNERSHIP          | Parent chain revisits an entity
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | YAML configuration is malformed

Input records that are structurally invalid (negative contract value, bad
period string, ownership outside 0..100) are rejected at construction with
``ValueError``; those are boundary errors, not calculation outcomes.
"""

from decimal import Decimal


class BackofficeError(Exception):
    """
    Base exception for all back-office calculation errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BACKOFFICE_ERROR"


# Revenue recognition exceptions


class RevenueRecognitionError(BackofficeError):
    """Base exception for revenue recognition errors."""

    code: str = "REVENUE_RECOGNITION_ERROR"


class InvalidMilestoneSequenceError(RevenueRecognitionError):
    """Milestone percentages are not strictly increasing or do not end at 100."""

    code: str = "INVALID_MILESTONE_SEQUENCE"

    def __init__(self, contract_id: str, percentages: list[str], reason: str):
        self.contract_id = contract_id
        self.percentages = percentages
        self.reason = reason
        super().__init__(
            f"Invalid milestone sequence for contract {contract_id}: "
            f"{reason} (percentages={percentages})"
        )


class DivisionByZeroError(RevenueRecognitionError):
    """Percentage-of-completion requested with a zero cost estimate."""

    code: str = "DIVISION_BY_ZERO"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(
            f"Cost estimate is zero for contract {contract_id}; "
            f"completion percentage is undefined"
        )


class ContractNotCompleteError(RevenueRecognitionError):
    """Completed-contract recognition requested for a contract still open."""

    code: str = "CONTRACT_NOT_COMPLETE"

    def __init__(self, contract_id: str, status: str):
        self.contract_id = contract_id
        self.status = status
        super().__init__(
            f"Contract {contract_id} is not complete (status={status})"
        )


class OverRecognitionError(RevenueRecognitionError):
    """Cumulative recognized revenue would exceed the contract value."""

    code: str = "OVER_RECOGNITION"

    def __init__(
        self,
        contract_id: str,
        total_value: Decimal,
        attempted_total: Decimal,
        over_recognition_amount: Decimal,
    ):
        self.contract_id = contract_id
        self.total_value = total_value
        self.attempted_total = attempted_total
        self.over_recognition_amount = over_recognition_amount
        super().__init__(
            f"Recognition exceeds contract value for {contract_id}: "
            f"attempted {attempted_total}, contract value {total_value}, "
            f"over by {over_recognition_amount}"
        )


class InvalidStatusTransitionError(RevenueRecognitionError):
    """Recognition entry status change is not allowed by the workflow."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, from_status: str, to_status: str, workflow: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        self.workflow = workflow
        super().__init__(
            f"Invalid status transition: {from_status} -> {to_status}"
        )


# Consolidation exceptions


class ConsolidationError(BackofficeError):
    """Base exception for multi-entity consolidation errors."""

    code: str = "CONSOLIDATION_ERROR"


class MissingExchangeRateError(ConsolidationError):
    """No exchange rate supplied for an included entity's currency."""

    code: str = "MISSING_EXCHANGE_RATE"

    def __init__(self, currency: str, base_currency: str, entity_id: str | None = None):
        self.currency = currency
        self.base_currency = base_currency
        self.entity_id = entity_id
        super().__init__(
            f"Missing exchange rate {currency} -> {base_currency}"
            + (f" for entity {entity_id}" if entity_id else "")
        )


class CircularOwnershipError(ConsolidationError):
    """An entity's parent chain loops back on itself."""

    code: str = "CIRCULAR_OWNERSHIP"

    def __init__(self, entity_id: str, chain: list[str]):
        self.entity_id = entity_id
        self.chain = chain
        super().__init__(
            f"Circular ownership detected at entity {entity_id}: "
            f"{' -> '.join(chain)}"
        )


# Configuration exceptions


class ConfigurationError(BackofficeError):
    """Configuration file content could not be turned into valid settings."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")
