"""
Canonical workflow types (``backoffice_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document status state machines.  Modules declare
their lifecycles as ``Workflow`` instances; callers ask the workflow
whether a status change is legal instead of comparing strings.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` and every ``terminal_states`` member are in ``states``.
* Terminal states have no outgoing transitions.
* At most one transition exists per (from_state, to_state) pair.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A named condition that must hold before a transition fires.

    Descriptive only; the caller evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; structure validated at construction.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} not in states"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            for state in (t.from_state, t.to_state):
                if state not in self.states:
                    raise ValueError(
                        f"Workflow {self.name}: transition references unknown state {state!r}"
                    )
            if (t.from_state, t.to_state) in seen:
                raise ValueError(
                    f"Workflow {self.name}: duplicate transition "
                    f"{t.from_state} -> {t.to_state}"
                )
            seen.add((t.from_state, t.to_state))
        for state in self.terminal_states:
            if state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {state!r} not in states"
                )
            if self.allowed_targets(state):
                raise ValueError(
                    f"Workflow {self.name}: terminal state {state!r} has outgoing transitions"
                )

    def find_transition(self, from_state: str, to_state: str) -> Transition | None:
        """The transition from ``from_state`` to ``to_state``, if declared."""
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def allowed_targets(self, from_state: str) -> tuple[str, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states
