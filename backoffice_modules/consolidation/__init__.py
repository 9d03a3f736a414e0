"""
Module: backoffice_modules.consolidation
Responsibility:
    Multi-entity consolidation glue: configuration and ConsolidationService.
"""

from backoffice_modules.consolidation.config import ConsolidationConfig
from backoffice_modules.consolidation.service import ConsolidationService

__all__ = [
    "ConsolidationConfig",
    "ConsolidationService",
]
