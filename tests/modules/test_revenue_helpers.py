"""Tests for revenue reporting helpers."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from backoffice_engines.revenue_schedule import (
    RecognitionMethod,
    RecognitionStatus,
    RevenueRecognitionEntry,
)
from backoffice_modules.revenue.helpers import (
    contract_completion_status,
    deferred_revenue_analysis,
    performance_obligation_report,
    recognition_summary,
)
from tests.builders import make_contract, make_entry


class TestContractCompletionStatus:

    def test_partial_completion(self):
        status = contract_completion_status(
            make_contract(), [make_entry("4000", RecognitionStatus.RECOGNIZED)],
        )
        assert status.total_recognized == Decimal("4000")
        assert status.remaining == Decimal("20000")
        assert status.completion_percentage == Decimal("16.67")
        assert status.is_fully_recognized is False

    def test_only_recognized_entries_of_contract_count(self):
        entries = [
            make_entry("4000", RecognitionStatus.RECOGNIZED),
            make_entry("5000", RecognitionStatus.PENDING),
            make_entry("6000", RecognitionStatus.REVERSED),
            make_entry("7000", RecognitionStatus.RECOGNIZED, contract_id="C-OTHER"),
        ]
        status = contract_completion_status(make_contract(), entries)
        assert status.total_recognized == Decimal("4000")

    def test_fully_recognized(self):
        status = contract_completion_status(
            make_contract(), [make_entry("24000", RecognitionStatus.RECOGNIZED)],
        )
        assert status.completion_percentage == Decimal("100.00")
        assert status.is_fully_recognized is True

    def test_no_entries(self):
        status = contract_completion_status(make_contract(), [])
        assert status.completion_percentage == Decimal("0.00")


class TestRecognitionSummary:

    def test_totals_by_status(self):
        entries = [
            make_entry("100", RecognitionStatus.RECOGNIZED),
            make_entry("50", RecognitionStatus.RECOGNIZED),
            make_entry("30", RecognitionStatus.DEFERRED),
            make_entry("20", RecognitionStatus.PENDING),
            make_entry("10", RecognitionStatus.APPROVED),
            make_entry("5", RecognitionStatus.REVERSED),
        ]
        summary = recognition_summary(entries)
        assert summary.total_recognized == Decimal("150")
        assert summary.total_deferred == Decimal("30")
        assert summary.total_pending == Decimal("20")
        assert summary.total_approved == Decimal("10")
        assert summary.total_reversed == Decimal("5")
        assert summary.entry_count == 6

    def test_empty(self):
        summary = recognition_summary([])
        assert summary.total_recognized == Decimal("0")
        assert summary.entry_count == 0


class TestDeferredRevenueAnalysis:

    def test_grouped_by_period_and_method(self):
        entries = [
            RevenueRecognitionEntry(
                "C-1", "2024-03", Decimal("300"), RecognitionStatus.DEFERRED,
                recognition_method=RecognitionMethod.MILESTONE,
            ),
            RevenueRecognitionEntry(
                "C-2", "2024-01", Decimal("100"), RecognitionStatus.DEFERRED,
                recognition_method=RecognitionMethod.STRAIGHT_LINE,
            ),
            RevenueRecognitionEntry(
                "C-3", "2024-01", Decimal("50"), RecognitionStatus.DEFERRED,
            ),
            RevenueRecognitionEntry(
                "C-4", "2024-01", Decimal("999"), RecognitionStatus.RECOGNIZED,
            ),
        ]
        analysis = deferred_revenue_analysis(entries)
        assert analysis.total_deferred == Decimal("450")
        assert analysis.entry_count == 3
        assert list(analysis.by_period) == ["2024-01", "2024-03"]
        assert analysis.by_period["2024-01"] == Decimal("150")
        assert analysis.by_method == {
            "milestone": Decimal("300"),
            "straight_line": Decimal("100"),
            "unspecified": Decimal("50"),
        }


class TestPerformanceObligationReport:

    def test_completed_pending_overdue(self):
        delivered = replace(make_entry("2000", period="2024-09"), is_performance_complete=True)
        entries = [
            make_entry("1000", RecognitionStatus.RECOGNIZED, period="2024-07"),
            delivered,
            make_entry("500", period="2024-08"),
            make_entry("300", RecognitionStatus.DEFERRED, period="2024-06"),
            make_entry("800", RecognitionStatus.APPROVED, period="2024-09"),
            make_entry("900", period="2024-11"),
            make_entry("50", RecognitionStatus.REVERSED, period="2024-01"),
        ]
        report = performance_obligation_report(entries, date(2024, 9, 15))

        assert report.as_of_period == "2024-09"
        assert report.completed_amount == Decimal("3000")
        assert report.overdue_amount == Decimal("800")
        assert report.pending_amount == Decimal("1700")
        assert delivered in report.completed
        assert len(report.completed) + len(report.pending) + len(report.overdue) == 6

    def test_empty(self):
        report = performance_obligation_report([], date(2024, 1, 1))
        assert report.completed == ()
        assert report.overdue_amount == Decimal("0")
