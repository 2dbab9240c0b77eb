"""Todo status enumeration for the status state machine.

This module provides TodoStatus enum for tracking where a todo item is in
its lifecycle.
"""

from enum import Enum


class TodoStatus(str, Enum):
    """Todo item lifecycle states.

    - PENDING: Item was created and no work has started
    - IN_PROGRESS: Work on the item is underway
    - COMPLETED: Item is finished (terminal under the default policy)

    Enum values are lowercase strings so they serialize directly into snapshots
    and command payloads.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
