"""
StayLedger Workflow Primitive - Generic State Machine
=====================================================
Deterministic state machine schema shared by the booking, withdrawal and
deposit lifecycles.

RULES:
- Invalid transitions are REJECTED, never skipped silently
- Terminal states have no outgoing transitions
- The definition is immutable (frozen)

This file contains NO persistence logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable

from core.errors import InvalidStateError


# ══════════════════════════════════════════════════════════════
# WORKFLOW DEFINITION (state machine schema)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Defines the valid states and transitions for a lifecycle.

    Fields:
        name:            Identifier (e.g. "Withdrawal")
        initial_state:   Starting state for new instances
        terminal_states: States from which no further transitions are allowed
        transitions:     Dict of {from_state: frozenset(allowed_to_states)}
    """
    name: str
    initial_state: str
    terminal_states: FrozenSet[str]
    transitions: Dict[str, FrozenSet[str]]

    def __post_init__(self):
        if not self.name:
            raise ValueError("Workflow name must be non-empty.")
        if not self.initial_state:
            raise ValueError("initial_state must be non-empty.")
        if self.initial_state not in self.transitions:
            raise ValueError(
                f"initial_state '{self.initial_state}' not in transitions."
            )
        for state in self.terminal_states:
            if self.transitions.get(state):
                raise ValueError(f"terminal state '{state}' has outgoing transitions.")

    def is_valid_transition(self, from_state: str, to_state: str) -> bool:
        allowed = self.transitions.get(from_state, frozenset())
        return to_state in allowed

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def allowed_next_states(self, from_state: str) -> FrozenSet[str]:
        return self.transitions.get(from_state, frozenset())

    def require_transition(self, entity_id: str, from_state: str, to_state: str) -> None:
        """Raise InvalidStateError unless from_state -> to_state is allowed."""
        if not self.is_valid_transition(from_state, to_state):
            raise InvalidStateError(
                f"{self.name} {entity_id} cannot move from "
                f"'{from_state}' to '{to_state}'.",
                entity_id=entity_id,
                from_state=from_state,
                to_state=to_state,
            )

    def require_state(self, entity_id: str, current: str, expected: Iterable[str]) -> None:
        """Raise InvalidStateError unless current is one of expected."""
        expected = tuple(expected)
        if current not in expected:
            raise InvalidStateError(
                f"{self.name} {entity_id} is '{current}', expected one of "
                f"{', '.join(expected)}.",
                entity_id=entity_id,
                status=current,
            )


def build_workflow(name: str, initial: str, edges: Dict[str, Iterable[str]]) -> WorkflowDefinition:
    """
    Build a definition from plain edges; states with no outgoing edges
    become terminal.
    """
    transitions = {state: frozenset(targets) for state, targets in edges.items()}
    for targets in list(transitions.values()):
        for target in targets:
            transitions.setdefault(target, frozenset())
    terminal = frozenset(s for s, t in transitions.items() if not t)
    return WorkflowDefinition(
        name=name,
        initial_state=initial,
        terminal_states=terminal,
        transitions=transitions,
    )
