"""
Tests for the Consolidation Engine.

Covers:
- Entity filtering (consolidated flag, zero ownership)
- Currency translation and rounding
- Aggregation and net income
- Intercompany eliminations (applied and skipped)
- Minority interests
- Ownership cycle detection
- Report serialization
"""

from datetime import date
from decimal import Decimal

import pytest

from backoffice_engines.consolidation import (
    ConsolidationEngine,
    EliminationType,
    IntercompanyElimination,
)
from backoffice_kernel.exceptions import (
    CircularOwnershipError,
    ConsolidationError,
    MissingExchangeRateError,
)
from tests.builders import make_entity, make_financials

PERIOD = "2024-03"
RATES = {"EUR": Decimal("1.10"), "GBP": Decimal("1.25")}


def _group():
    parent = make_entity("P", name="Parent Inc")
    sub_eu = make_entity(
        "S1", ownership_percent=Decimal("75"), currency="EUR", parent_entity_id="P",
    )
    sub_uk = make_entity(
        "S2", ownership_percent=Decimal("60"), currency="GBP",
        parent_entity_id="P", consolidated=False,
    )
    return [parent, sub_eu, sub_uk]


def _financials():
    return [
        make_financials(
            "P", revenue="1000000", expenses="600000",
            assets="5000000", liabilities="2000000", equity="3000000",
        ),
        make_financials(
            "S1", revenue="200000", expenses="150000",
            assets="800000", liabilities="300000", equity="500000",
        ),
        make_financials(
            "S2", revenue="100000", expenses="90000",
            assets="400000", liabilities="100000", equity="300000",
        ),
    ]


class TestAggregation:
    """Filtering, translation and totals."""

    def setup_method(self):
        self.engine = ConsolidationEngine()

    def test_group_totals(self):
        report = self.engine.consolidate(_group(), _financials(), [], RATES, "USD", PERIOD)

        fin = report.consolidated_financials
        assert fin.revenue == Decimal("1220000.00")
        assert fin.expenses == Decimal("765000.00")
        assert fin.net_income == Decimal("455000.00")
        assert fin.total_assets == Decimal("5880000.00")
        assert fin.total_liabilities == Decimal("2330000.00")
        assert fin.equity == Decimal("3550000.00")

    def test_non_consolidated_entity_excluded(self):
        report = self.engine.consolidate(_group(), _financials(), [], RATES, "USD", PERIOD)
        assert report.entities == ("P", "S1")
        assert report.excluded_entities == ("S2",)

    def test_zero_ownership_excluded(self):
        entities = [make_entity("P"), make_entity("Z", ownership_percent=Decimal("0"))]
        financials = [make_financials("P", revenue="100"), make_financials("Z", revenue="999")]
        report = self.engine.consolidate(entities, financials, [], {}, "USD", PERIOD)
        assert report.excluded_entities == ("Z",)
        assert report.consolidated_financials.revenue == Decimal("100")

    def test_excluded_entity_needs_no_rate(self):
        entities = [make_entity("P"), make_entity("X", currency="JPY", consolidated=False)]
        report = self.engine.consolidate(entities, [], [], {}, "USD", PERIOD)
        assert report.entities == ("P",)

    def test_missing_financials_count_as_zero(self):
        report = self.engine.consolidate([make_entity("P")], [], [], {}, "USD", PERIOD)
        fin = report.consolidated_financials
        assert fin.revenue == Decimal("0")
        assert fin.net_income == Decimal("0")

    def test_other_period_financials_ignored(self):
        financials = [make_financials("P", period="2024-02", revenue="500")]
        report = self.engine.consolidate([make_entity("P")], financials, [], {}, "USD", PERIOD)
        assert report.consolidated_financials.revenue == Decimal("0")

    def test_duplicate_financials_rejected(self):
        financials = [make_financials("P", revenue="1"), make_financials("P", revenue="2")]
        with pytest.raises(ValueError, match="Duplicate financials"):
            self.engine.consolidate([make_entity("P")], financials, [], {}, "USD", PERIOD)

    def test_invalid_period_rejected(self):
        with pytest.raises(ValueError):
            self.engine.consolidate([make_entity("P")], [], [], {}, "USD", "March")


class TestCurrencyTranslation:

    def setup_method(self):
        self.engine = ConsolidationEngine()

    def test_same_currency_round_trip(self):
        financials = [make_financials("P", revenue="1234.56", assets="99.99")]
        report = self.engine.consolidate([make_entity("P")], financials, [], {}, "USD", PERIOD)
        assert report.consolidated_financials.revenue == Decimal("1234.56")
        assert report.consolidated_financials.total_assets == Decimal("99.99")
        assert report.currency_consolidation.exchange_rates == {"USD": Decimal("1")}

    def test_translation_rounds_half_away_from_zero(self):
        entities = [make_entity("E", currency="EUR")]
        financials = [make_financials("E", revenue="0.05", expenses="-0.05")]
        report = self.engine.consolidate(
            entities, financials, [], {"EUR": Decimal("1.1")}, "USD", PERIOD,
        )
        # 0.055 -> 0.06 and -0.055 -> -0.06
        assert report.consolidated_financials.revenue == Decimal("0.06")
        assert report.consolidated_financials.expenses == Decimal("-0.06")

    def test_converted_figures_round_to_two_places_for_any_base(self):
        entities = [make_entity("U")]
        financials = [make_financials("U", revenue="10.01")]
        report = self.engine.consolidate(
            entities, financials, [], {"USD": Decimal("151.5")}, "JPY", PERIOD,
        )
        # 10.01 * 151.5 = 1516.515
        assert report.consolidated_financials.revenue == Decimal("1516.52")

    @pytest.mark.parametrize("base", ["JPY", "KWD", "USD"])
    def test_base_currency_figures_pass_through_unrounded(self, base):
        entities = [make_entity("B", currency=base)]
        financials = [make_financials("B", revenue="1000.50", assets="10.005")]
        report = self.engine.consolidate(entities, financials, [], {}, base, PERIOD)
        fin = report.consolidated_financials
        assert fin.revenue == Decimal("1000.50")
        assert fin.total_assets == Decimal("10.005")

    def test_missing_rate(self):
        entities = [make_entity("E", currency="EUR")]
        with pytest.raises(MissingExchangeRateError) as exc_info:
            self.engine.consolidate(entities, [], [], {}, "USD", PERIOD)
        assert exc_info.value.currency == "EUR"
        assert exc_info.value.base_currency == "USD"
        assert exc_info.value.entity_id == "E"
        assert isinstance(exc_info.value, ConsolidationError)

    def test_contributions_reported(self):
        report = self.engine.consolidate(_group(), _financials(), [], RATES, "USD", PERIOD)
        s1 = next(c for c in report.contributions if c.entity_id == "S1")
        assert s1.exchange_rate == Decimal("1.10")
        assert s1.revenue == Decimal("220000.00")

    def test_consolidation_date_passed_through(self):
        report = self.engine.consolidate(
            [make_entity("P")], [], [], {}, "USD", PERIOD,
            consolidation_date=date(2024, 3, 31),
        )
        assert report.currency_consolidation.consolidation_date == date(2024, 3, 31)


class TestEliminations:
    """Eliminations are applied or recorded as skipped, never dropped."""

    def setup_method(self):
        self.engine = ConsolidationEngine()

    def test_revenue_elimination_applied(self):
        elimination = IntercompanyElimination(
            affected_entities=("P", "S1"),
            amount=Decimal("50000"),
            elimination_type=EliminationType.REVENUE,
            description="Intercompany sales",
        )
        report = self.engine.consolidate(
            _group(), _financials(), [elimination], RATES, "USD", PERIOD,
        )
        fin = report.consolidated_financials
        assert fin.revenue == Decimal("1170000.00")
        assert fin.net_income == Decimal("405000.00")
        applied = report.eliminations_applied[0]
        assert applied.skipped is False
        assert applied.converted_amount == Decimal("50000.00")

    def test_elimination_translated_with_eliminating_entity_rate(self):
        elimination = IntercompanyElimination(
            affected_entities=("S1", "P"),
            amount=Decimal("10000"),
            elimination_type=EliminationType.ASSET,
        )
        report = self.engine.consolidate(
            _group(), _financials(), [elimination], RATES, "USD", PERIOD,
        )
        assert report.eliminations_applied[0].converted_amount == Decimal("11000.00")
        assert report.consolidated_financials.total_assets == Decimal("5869000.00")

    def test_explicit_elimination_rate(self):
        elimination = IntercompanyElimination(
            affected_entities=("P", "S1"),
            amount=Decimal("10000"),
            elimination_type=EliminationType.LIABILITY,
            eliminating_entity_id="S1",
            exchange_rate=Decimal("1.2"),
        )
        report = self.engine.consolidate(
            _group(), _financials(), [elimination], RATES, "USD", PERIOD,
        )
        assert report.eliminations_applied[0].converted_amount == Decimal("12000.00")
        assert report.consolidated_financials.total_liabilities == Decimal("2318000.00")

    def test_elimination_with_excluded_entity_skipped(self):
        elimination = IntercompanyElimination(
            affected_entities=("P", "S2"),
            amount=Decimal("20000"),
            elimination_type=EliminationType.REVENUE,
        )
        report = self.engine.consolidate(
            _group(), _financials(), [elimination], RATES, "USD", PERIOD,
        )
        assert len(report.eliminations_applied) == 1
        skipped = report.eliminations_applied[0]
        assert skipped.skipped is True
        assert "S2" in skipped.skip_reason
        assert skipped.converted_amount is None
        assert report.consolidated_financials.revenue == Decimal("1220000.00")

    def test_equity_elimination(self):
        elimination = IntercompanyElimination(
            affected_entities=("P", "S1"),
            amount=Decimal("1000"),
            elimination_type=EliminationType.EQUITY,
        )
        report = self.engine.consolidate(
            _group(), _financials(), [elimination], RATES, "USD", PERIOD,
        )
        assert report.consolidated_financials.equity == Decimal("3549000.00")

    def test_elimination_validation(self):
        with pytest.raises(ValueError, match="at least two"):
            IntercompanyElimination(("P",), Decimal("1"), EliminationType.REVENUE)
        with pytest.raises(ValueError, match="positive"):
            IntercompanyElimination(("P", "S1"), Decimal("0"), EliminationType.REVENUE)
        with pytest.raises(ValueError, match="eliminating_entity_id"):
            IntercompanyElimination(
                ("P", "S1"), Decimal("1"), EliminationType.REVENUE,
                eliminating_entity_id="S9",
            )


class TestMinorityInterest:

    def setup_method(self):
        self.engine = ConsolidationEngine()

    def test_partially_owned_subsidiary(self):
        report = self.engine.consolidate(_group(), _financials(), [], RATES, "USD", PERIOD)
        assert len(report.minority_interests) == 1
        mi = report.minority_interests[0]
        assert mi.entity_id == "S1"
        assert mi.minority_share == Decimal("25")
        assert mi.amount == Decimal("137500.00")
        assert report.total_minority_interest == Decimal("137500.00")

    def test_no_minority_without_included_parent(self):
        entities = [make_entity("S", ownership_percent=Decimal("80"), parent_entity_id="EXT")]
        financials = [make_financials("S", assets="100")]
        report = self.engine.consolidate(entities, financials, [], {}, "USD", PERIOD)
        assert report.minority_interests == ()


class TestOwnershipCycles:

    def setup_method(self):
        self.engine = ConsolidationEngine()

    def test_two_entity_cycle(self):
        entities = [
            make_entity("A", parent_entity_id="B"),
            make_entity("B", parent_entity_id="A"),
        ]
        with pytest.raises(CircularOwnershipError) as exc_info:
            self.engine.consolidate(entities, [], [], {}, "USD", PERIOD)
        assert exc_info.value.code == "CIRCULAR_OWNERSHIP"
        assert exc_info.value.chain == ["A", "B", "A"]

    def test_self_parent_cycle(self):
        with pytest.raises(CircularOwnershipError):
            self.engine.consolidate(
                [make_entity("A", parent_entity_id="A")], [], [], {}, "USD", PERIOD,
            )

    def test_cycle_among_excluded_entities_still_detected(self):
        entities = [
            make_entity("P"),
            make_entity("X", parent_entity_id="Y", consolidated=False),
            make_entity("Y", parent_entity_id="X", consolidated=False),
        ]
        with pytest.raises(CircularOwnershipError):
            self.engine.consolidate(entities, [], [], {}, "USD", PERIOD)

    def test_unknown_parent_ends_chain(self):
        entities = [make_entity("A", parent_entity_id="HOLDCO")]
        report = self.engine.consolidate(entities, [], [], {}, "USD", PERIOD)
        assert report.entities == ("A",)


class TestEntityValidation:

    @pytest.mark.parametrize("ownership", ["-1", "100.5"])
    def test_ownership_range(self, ownership):
        with pytest.raises(ValueError, match="ownership_percent"):
            make_entity("E", ownership_percent=Decimal(ownership))

    def test_invalid_currency(self):
        with pytest.raises(ValueError):
            make_entity("E", currency="ZZZ")


class TestReportSerialization:

    def test_to_dict(self):
        elimination = IntercompanyElimination(
            affected_entities=("P", "S2"),
            amount=Decimal("20000"),
            elimination_type=EliminationType.REVENUE,
        )
        report = ConsolidationEngine().consolidate(
            _group(), _financials(), [elimination], RATES, "USD", PERIOD,
            consolidation_date=date(2024, 3, 31),
        )
        data = report.to_dict()
        assert data["consolidated_financials"]["net_income"] == "455000.00"
        assert data["excluded_entities"] == ["S2"]
        assert data["eliminations_applied"][0]["skipped"] is True
        assert data["eliminations_applied"][0]["converted_amount"] is None
        assert data["minority_interests"][0]["amount"] == "137500.00"
        assert data["currency_consolidation"]["exchange_rates"] == {"EUR": "1.10", "USD": "1"}
        assert data["currency_consolidation"]["consolidation_date"] == "2024-03-31"
