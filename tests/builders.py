"""Test data builders shared across the suite."""

import json
from datetime import date
from decimal import Decimal
from io import StringIO

from backoffice_engines.consolidation import Entity, PeriodFinancials
from backoffice_engines.revenue_schedule import (
    Contract,
    Milestone,
    RecognitionMethod,
    RecognitionStatus,
    RevenueRecognitionEntry,
)


def parse_logs(stream: StringIO) -> list[dict]:
    """Parse all JSON log lines from a stream."""
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


def make_contract(**overrides) -> Contract:
    """Straight-line 24000 USD contract over calendar 2024 unless overridden."""
    fields = {
        "contract_id": "C-001",
        "total_value": Decimal("24000"),
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 12, 31),
        "recognition_method": RecognitionMethod.STRAIGHT_LINE,
    }
    fields.update(overrides)
    return Contract(**fields)


def make_entry(
    amount: str,
    status: RecognitionStatus = RecognitionStatus.PENDING,
    period: str = "2024-01",
    contract_id: str = "C-001",
) -> RevenueRecognitionEntry:
    return RevenueRecognitionEntry(
        contract_id=contract_id,
        period=period,
        recognized_amount=Decimal(amount),
        status=status,
    )


def milestones(*percentages: str) -> tuple[Milestone, ...]:
    return tuple(
        Milestone(description=f"Milestone {i}", percentage=Decimal(p))
        for i, p in enumerate(percentages, start=1)
    )


def make_entity(entity_id: str, **overrides) -> Entity:
    fields = {
        "entity_id": entity_id,
        "ownership_percent": Decimal("100"),
        "currency": "USD",
    }
    fields.update(overrides)
    return Entity(**fields)


def make_financials(entity_id: str, period: str = "2024-03", **figures: str) -> PeriodFinancials:
    return PeriodFinancials(
        entity_id=entity_id,
        period=period,
        **{name: Decimal(value) for name, value in figures.items()},
    )
