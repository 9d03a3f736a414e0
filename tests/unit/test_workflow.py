"""Tests for the kernel workflow state-machine types."""

import pytest

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow


def _workflow(**overrides) -> Workflow:
    fields = {
        "name": "doc",
        "description": "test document",
        "initial_state": "draft",
        "states": ("draft", "approved", "void"),
        "transitions": (
            Transition("draft", "approved", action="approve", guard=Guard("ok", "all good")),
            Transition("draft", "void", action="void"),
        ),
        "terminal_states": ("void",),
    }
    fields.update(overrides)
    return Workflow(**fields)


class TestWorkflowStructure:

    def test_valid_workflow(self):
        wf = _workflow()
        assert wf.initial_state == "draft"
        assert wf.is_terminal("void")
        assert not wf.is_terminal("draft")

    def test_unknown_initial_state(self):
        with pytest.raises(ValueError, match="initial state"):
            _workflow(initial_state="missing")

    def test_transition_to_unknown_state(self):
        with pytest.raises(ValueError, match="unknown state"):
            _workflow(transitions=(Transition("draft", "posted", action="post"),))

    def test_duplicate_transition(self):
        with pytest.raises(ValueError, match="duplicate transition"):
            _workflow(transitions=(
                Transition("draft", "approved", action="approve"),
                Transition("draft", "approved", action="approve_again"),
            ))

    def test_terminal_state_with_outgoing_transition(self):
        with pytest.raises(ValueError, match="outgoing"):
            _workflow(transitions=(Transition("void", "draft", action="restore"),))


class TestWorkflowLookup:

    def test_find_transition(self):
        wf = _workflow()
        transition = wf.find_transition("draft", "approved")
        assert transition is not None
        assert transition.action == "approve"
        assert transition.guard.name == "ok"

    def test_find_missing_transition(self):
        assert _workflow().find_transition("approved", "draft") is None

    def test_allowed_targets(self):
        wf = _workflow()
        assert wf.allowed_targets("draft") == ("approved", "void")
        assert wf.allowed_targets("void") == ()
