"""
Traversal cursor for timeline instances.

The cursor is the whole mutable traversal state of one live timeline
instance. Keeping it in one plain object makes the engine resumable between
asynchronous trial completions and easy to inspect.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict


class NodeState(Enum):
    """Lifecycle of a live timeline instance."""

    GATING = "gating"        # conditional not evaluated yet
    ACTIVE = "active"        # walking children
    EXHAUSTED = "exhausted"  # terminal


@dataclass
class TraversalCursor:
    """
    Position of a live timeline instance.

    Attributes:
        state: Lifecycle state
        child_index: Index of the active child description
        expansion_index: Which copy of the active child is running
        repetition: Number of completed repetitions
        loop_count: Number of times the loop function asked for another pass
        terminated: Set by terminate_active_node(); honoured at the next advance
    """
    state: NodeState = NodeState.GATING
    child_index: int = 0
    expansion_index: int = 0
    repetition: int = 0
    loop_count: int = 0
    terminated: bool = False

    def restart_pass(self):
        """Rewind to the first child for another repetition or loop pass."""
        self.child_index = 0
        self.expansion_index = 0

    def next_child(self):
        """Move to the next child description."""
        self.child_index += 1
        self.expansion_index = 0

    @property
    def is_exhausted(self) -> bool:
        return self.state is NodeState.EXHAUSTED

    def to_dict(self) -> Dict[str, Any]:
        """Serialize cursor for logging and inspection."""
        data = asdict(self)
        data['state'] = self.state.value
        return data
