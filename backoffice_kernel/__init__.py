"""
Backoffice Kernel

Shared foundation for the back-office calculation engines:
- Typed, code-carrying exceptions
- Structured JSON logging with request-scoped context
- Decimal-only monetary value objects with ISO 4217 validation
- Accounting period helpers
- Workflow state machine types
"""

__version__ = "0.1.0"
