"""
Module: backoffice_modules.revenue.workflows
Responsibility:
    Declarative state machine for the revenue recognition entry lifecycle.

Architecture:
    backoffice_modules layer -- purely declarative frozen dataclasses.
    No I/O, no side effects.  Enforced by
    ``RevenueRecognitionService.transition_status``.

Invariants:
    - State names are RecognitionStatus values.
    - ``reversed`` is terminal.
    - Deferred entries only return to ``pending`` for re-evaluation; they
      are never recognized directly.
    - WITHIN_CONTRACT_VALUE is evaluated whenever a transition moves an
      entry into a status that counts against the contract value.
"""

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.revenue.workflows")


# Guards
WITHIN_CONTRACT_VALUE = Guard(
    "within_contract_value", "Cumulative recognition stays within the contract value",
)
PERFORMANCE_OBLIGATION_MET = Guard(
    "performance_obligation_met", "Performance for the period has been delivered",
)

RECOGNITION_ENTRY_WORKFLOW = Workflow(
    name="revenue_recognition_entry",
    description="Revenue recognition entry lifecycle",
    initial_state="pending",
    states=(
        "pending",
        "approved",
        "recognized",
        "deferred",
        "reversed",
    ),
    transitions=(
        Transition("pending", "approved", action="approve", guard=WITHIN_CONTRACT_VALUE),
        Transition("approved", "recognized", action="recognize", guard=PERFORMANCE_OBLIGATION_MET),
        Transition("pending", "deferred", action="defer"),
        Transition("deferred", "pending", action="reevaluate", guard=WITHIN_CONTRACT_VALUE),
        Transition("recognized", "reversed", action="reverse"),
    ),
    terminal_states=("reversed",),
)

logger.info(
    "revenue_entry_workflow_registered",
    extra={
        "workflow_name": RECOGNITION_ENTRY_WORKFLOW.name,
        "state_count": len(RECOGNITION_ENTRY_WORKFLOW.states),
        "transition_count": len(RECOGNITION_ENTRY_WORKFLOW.transitions),
    },
)
