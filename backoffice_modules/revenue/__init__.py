"""
Module: backoffice_modules.revenue
Responsibility:
    Revenue recognition glue: entry status workflow, configuration,
    reporting helpers and the RevenueRecognitionService.

Architecture:
    Dependency direction (strict):
        backoffice_modules/revenue  -->  backoffice_engines (RevenueScheduleEngine)
        backoffice_modules/revenue  -->  backoffice_kernel  (domain, logging)
        backoffice_modules/revenue  -X-> backoffice_config  (FORBIDDEN)
"""

from backoffice_modules.revenue.config import RevenueConfig
from backoffice_modules.revenue.helpers import (
    CompletionStatus,
    DeferredRevenueAnalysis,
    PerformanceObligationReport,
    RecognitionSummary,
    contract_completion_status,
    deferred_revenue_analysis,
    performance_obligation_report,
    recognition_summary,
)
from backoffice_modules.revenue.service import RevenueRecognitionService
from backoffice_modules.revenue.workflows import RECOGNITION_ENTRY_WORKFLOW

__all__ = [
    "RevenueConfig",
    "RevenueRecognitionService",
    "RECOGNITION_ENTRY_WORKFLOW",
    "CompletionStatus",
    "DeferredRevenueAnalysis",
    "PerformanceObligationReport",
    "RecognitionSummary",
    "contract_completion_status",
    "deferred_revenue_analysis",
    "performance_obligation_report",
    "recognition_summary",
]
