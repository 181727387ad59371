"""
Canonical workflow types (``settlement_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for step-based state machines.  The payment entry
wizard declares its states and guarded transitions with these types
instead of scattering boolean flags through its own state.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the wizard does.
    """
    name: str
    description: str

    def __post_init__(self) -> None:
        if not self.name or not self.description:
            raise ValueError("Guard name and description are required")


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``submits_payment=True`` marks the transition that hands a payload to
    the external submission collaborator.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    submits_payment: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a multi-step entry form.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"initial_state '{self.initial_state}' is not one of {self.states}"
            )
        for transition in self.transitions:
            if transition.from_state not in self.states:
                raise ValueError(
                    f"Transition '{transition.action}' starts from unknown "
                    f"state '{transition.from_state}'"
                )
            if transition.to_state not in self.states:
                raise ValueError(
                    f"Transition '{transition.action}' targets unknown "
                    f"state '{transition.to_state}'"
                )

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        """Return the transition for ``action`` out of ``from_state``, if any."""
        for transition in self.transitions:
            if transition.from_state == from_state and transition.action == action:
                return transition
        return None

    def actions_from(self, state: str) -> tuple[str, ...]:
        """Actions available from a state, in declaration order."""
        return tuple(t.action for t in self.transitions if t.from_state == state)
