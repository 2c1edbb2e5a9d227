"""Escrow lifecycle guard built on python-statemachine.

The escrow manager never writes a status the machine has not accepted first.
A fresh machine is created for every check, seeded with the stored status; it
is thrown away afterwards. The store's compare-and-swap does the actual write.

    pending --lock_confirmed--> active --release--> released
    active --refund--> refunded

``released`` and ``refunded`` are final.
"""

from __future__ import annotations

from statemachine import State, StateMachine


class EscrowStateMachine(StateMachine):
    """Per-check transition guard for one escrow.

    >>> sm = EscrowStateMachine("active")
    >>> sm.fire("refund")
    'refunded'
    """

    pending = State("Pending", initial=True)
    active = State("Active")
    released = State("Released", final=True)
    refunded = State("Refunded", final=True)

    lock_confirmed = pending.to(active)
    release = active.to(released)
    refund = active.to(refunded)

    def __init__(self, current_status: str = "pending") -> None:
        known = sorted(s.value for s in self.states)
        if current_status not in known:
            raise ValueError(f"Unknown status '{current_status}'. Valid states: {', '.join(known)}")
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        return str(self.current_state.value)

    @property
    def is_terminal(self) -> bool:
        return bool(self.current_state.final)

    def get_allowed_events(self) -> list[str]:
        """Names of the events that may fire from the current status."""
        return [str(t.event) for t in self.current_state.transitions]

    def fire(self, event_name: str) -> str:
        """Fire ``event_name`` and return the resulting status.

        Raises:
            ValueError: ``event_name`` is not an event of this machine.
            TransitionNotAllowed: The event cannot fire from the current status.
        """
        if event_name not in {str(t.event) for s in self.states for t in s.transitions}:
            raise ValueError(
                f"Unknown event '{event_name}'. "
                f"Allowed from {self.status}: {self.get_allowed_events()}"
            )
        self.send(event_name)
        return self.status


def validate_transition(current_status: str, event_name: str) -> str:
    """Status reached by firing ``event_name`` from ``current_status``."""
    return EscrowStateMachine(current_status).fire(event_name)
