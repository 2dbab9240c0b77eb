"""Status state machine for todo items.

Transitions are validated against a transition map, in the same shape the
package uses for every state machine: a dict from source state to the set of
permitted target states. Terminal states map to an empty set.
"""

from typing import Dict, Optional, Set

from todo_ledger.fsm.todo_status import TodoStatus
from todo_ledger.errors import InvalidTransitionError


# Default transition map: completed items are never reopened
TODO_TRANSITIONS: Dict[TodoStatus, Set[TodoStatus]] = {
    TodoStatus.PENDING: {TodoStatus.IN_PROGRESS, TodoStatus.COMPLETED},
    TodoStatus.IN_PROGRESS: {TodoStatus.COMPLETED},
    TodoStatus.COMPLETED: set(),  # Terminal state
}

# Opt-in policy for integrations that treat the list as freely editable
REOPENABLE_TRANSITIONS: Dict[TodoStatus, Set[TodoStatus]] = {
    TodoStatus.PENDING: {TodoStatus.IN_PROGRESS, TodoStatus.COMPLETED},
    TodoStatus.IN_PROGRESS: {TodoStatus.PENDING, TodoStatus.COMPLETED},
    TodoStatus.COMPLETED: {TodoStatus.PENDING, TodoStatus.IN_PROGRESS},
}


class StatusMachine:
    """Validates status moves for todo items.

    The machine is stateless: the current status lives on the TodoItem, so a
    single instance is shared by the whole list.

    Example:
        >>> machine = StatusMachine()
        >>> machine.can_transition(TodoStatus.PENDING, TodoStatus.IN_PROGRESS)
        True
        >>> machine.can_transition(TodoStatus.COMPLETED, TodoStatus.PENDING)
        False
    """

    initial_state = TodoStatus.PENDING

    def __init__(self, transitions: Optional[Dict[TodoStatus, Set[TodoStatus]]] = None):
        """Initialize the status machine.

        Args:
            transitions: Optional custom transition map. Defaults to TODO_TRANSITIONS.
        """
        self._transitions = transitions if transitions is not None else TODO_TRANSITIONS

    @classmethod
    def for_policy(cls, allow_reopen: bool) -> "StatusMachine":
        """Build the machine for the configured reopen policy."""
        return cls(REOPENABLE_TRANSITIONS if allow_reopen else TODO_TRANSITIONS)

    @property
    def transitions(self) -> Dict[TodoStatus, Set[TodoStatus]]:
        """Get the transition map (read-only)."""
        return self._transitions

    def valid_targets(self, from_state: TodoStatus) -> Set[TodoStatus]:
        return set(self._transitions.get(from_state, set()))

    def can_transition(self, from_state: TodoStatus, to_state: TodoStatus) -> bool:
        """Check whether a move is permitted. Same-state moves never are."""
        if from_state == to_state:
            return False
        return to_state in self._transitions.get(from_state, set())

    def is_terminal(self, state: TodoStatus) -> bool:
        return not self._transitions.get(state)

    def check_transition(
        self, from_state: TodoStatus, to_state: TodoStatus, item_id: Optional[str] = None
    ) -> None:
        """Raise InvalidTransitionError unless the move is permitted.

        Args:
            from_state: Current status of the item.
            to_state: Requested status.
            item_id: Item being moved, included in the error.

        Raises:
            InvalidTransitionError: The move is not in the transition map.
        """
        if self.can_transition(from_state, to_state):
            return
        valid = sorted(s.value for s in self.valid_targets(from_state))
        raise InvalidTransitionError(
            f"Invalid transition: {from_state.value} -> {to_state.value}. "
            f"Valid transitions from {from_state.value}: {valid}",
            item_id=item_id,
            current=from_state,
            requested=to_state,
        )
