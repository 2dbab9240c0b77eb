"""Finite state machine package for todo-ledger.

This package provides the todo item model and its status state machine.
"""

from todo_ledger.fsm.todo_status import TodoStatus
from todo_ledger.fsm.todo import TodoItem
from todo_ledger.fsm.status_fsm import (
    REOPENABLE_TRANSITIONS,
    TODO_TRANSITIONS,
    StatusMachine,
)

__all__ = [
    "TodoStatus",
    "TodoItem",
    "StatusMachine",
    "TODO_TRANSITIONS",
    "REOPENABLE_TRANSITIONS",
]
