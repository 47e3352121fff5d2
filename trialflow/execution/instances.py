"""
Live timeline instances.

Descriptions (node.py) are instantiated into live instances when traversal
reaches them. A TimelineNode with timeline variables becomes one
TimelineInstance per record, each with its own scope and cursor, so loop and
conditional decisions are never shared between copies.

TimelineInstance.next_leaf() is the traversal algorithm. It resumes from the
cursor position left by the previous call, so the engine never re-walks the
tree from the root.
"""

from typing import Any, List, Optional, Tuple, Union
import logging

from .cursor import NodeState, TraversalCursor
from .iteration_data import IterationData
from .node import LeafNode, NodeDescription, TimelineNode, as_node
from .scope import VariableScope, render_trial
from .trial import Trial

logger = logging.getLogger(__name__)

NodePath = Tuple[Tuple[int, int], ...]


class LeafInstance:
    """A trial waiting to run (or running) at a specific place in the tree."""

    def __init__(self, description: LeafNode, scope: VariableScope,
                 parent: Optional['TimelineInstance'], path: NodePath):
        self.description = description
        self.scope = scope
        self.parent = parent
        self.path = path
        self.trial: Optional[Trial] = None

    def render(self) -> Any:
        """Trial specification with timeline variables substituted."""
        return render_trial(self.description.trial, self.scope)

    def ancestors(self) -> List['TimelineInstance']:
        """Enclosing timeline instances, innermost first."""
        chain = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        return chain

    def __repr__(self):
        return f"LeafInstance({self.description.label!r}, path={self.path})"


class TimelineInstance:
    """
    One live copy of a TimelineNode.

    Owns its cursor, its scope, its own copy of the child list (so the root
    can grow without touching the caller's description) and, for nodes with
    a loop function, the trials completed during the current pass.
    """

    def __init__(self, description: TimelineNode, scope: VariableScope,
                 parent: Optional['TimelineInstance'] = None, path: NodePath = ()):
        self.description = description
        self.scope = scope
        self.parent = parent
        self.path = path
        self.cursor = TraversalCursor()
        self.children: List[NodeDescription] = list(description.timeline)
        self._copies: Optional[List[Union[LeafInstance, 'TimelineInstance']]] = None
        self._pass_trials: List[Trial] = []

    @property
    def label(self) -> str:
        path = '.'.join(f"{child}-{copy}" for child, copy in self.path) or 'root'
        return f"{self.description.label}[{path}]"

    @property
    def is_exhausted(self) -> bool:
        return self.cursor.is_exhausted

    def append_child(self, description: Any):
        """Add a child description after all current children."""
        self.children.append(as_node(description))

    def terminate(self):
        """Request exhaustion at the next advance."""
        self.cursor.terminated = True

    def record_trial(self, trial: Trial):
        """Remember a completed trial for this pass's loop function."""
        if self.description.loop_function is not None:
            self._pass_trials.append(trial)

    def next_leaf(self) -> Optional[LeafInstance]:
        """
        Advance to the next leaf below this instance.

        Returns:
            The next LeafInstance to execute, or None once this instance is
            exhausted (including when it contributes no trials at all)

        Raises:
            Whatever a conditional or loop function raises, unchanged
        """
        cursor = self.cursor
        if cursor.state is NodeState.GATING:
            self._enter()

        while cursor.state is NodeState.ACTIVE:
            if cursor.terminated:
                self._exhaust("terminated")
                break
            leaf = self._step()
            if leaf is not None:
                return leaf
        return None

    def _enter(self):
        description = self.description
        if description.conditional_function is not None:
            if not description.conditional_function(self.scope):
                self._exhaust("conditional_function returned False")
                return
        if description.loop_function is None and description.repetitions == 0:
            self._exhaust("zero repetitions")
            return

        self.cursor.state = NodeState.ACTIVE
        logger.debug(f"{self.label}: entered")

    def _step(self) -> Optional[LeafInstance]:
        """Make one traversal move; return a leaf when one is reached."""
        cursor = self.cursor

        if self._copies is None:
            if cursor.child_index >= len(self.children):
                self._end_pass()
                return None
            self._copies = instantiate(
                self.children[cursor.child_index],
                self.scope,
                parent=self,
                path=self.path,
                child_index=cursor.child_index
            )
            cursor.expansion_index = 0

        if cursor.expansion_index >= len(self._copies):
            self._copies = None
            cursor.next_child()
            return None

        current = self._copies[cursor.expansion_index]
        if isinstance(current, LeafInstance):
            cursor.expansion_index += 1
            return current

        leaf = current.next_leaf()
        if leaf is None:
            cursor.expansion_index += 1
        return leaf

    def _end_pass(self):
        description = self.description
        cursor = self.cursor

        if description.loop_function is not None:
            data = IterationData(self._pass_trials)
            if description.loop_function(data, self.scope):
                cursor.loop_count += 1
                logger.debug(f"{self.label}: loop_function returned True, pass {cursor.loop_count + 1}")
                self._start_pass()
            else:
                self._exhaust("loop_function returned False")
            return

        cursor.repetition += 1
        if cursor.repetition < description.repetitions:
            logger.debug(f"{self.label}: repetition {cursor.repetition + 1}/{description.repetitions}")
            self._start_pass()
        else:
            self._exhaust("repetitions complete")

    def _start_pass(self):
        self.cursor.restart_pass()
        self._copies = None
        self._pass_trials = []

    def _exhaust(self, reason: str):
        self.cursor.state = NodeState.EXHAUSTED
        self._copies = None
        logger.debug(f"{self.label}: exhausted ({reason})")

    def __repr__(self):
        return f"TimelineInstance({self.label!r}, cursor={self.cursor.to_dict()})"


def instantiate(description: Any, parent_scope: VariableScope,
                parent: Optional[TimelineInstance] = None, path: NodePath = (),
                child_index: int = 0) -> List[Union[LeafInstance, TimelineInstance]]:
    """
    Create the live instances for one child description.

    Args:
        description: Child description (or plain structure)
        parent_scope: Scope of the enclosing instance
        parent: Enclosing instance
        path: Path of the enclosing instance
        child_index: Position of the description among its siblings

    Returns:
        One instance per variable record, in record order; exactly one
        instance sharing parent_scope when there are no records

    Raises:
        InvalidNodeSpec: If description is malformed
    """
    node = as_node(description)

    if isinstance(node, LeafNode):
        return [LeafInstance(node, parent_scope, parent, path + ((child_index, 0),))]

    records = node.variable_records()
    if records is None:
        return [TimelineInstance(node, parent_scope, parent, path + ((child_index, 0),))]

    return [
        TimelineInstance(node, parent_scope.child(record), parent, path + ((child_index, i),))
        for i, record in enumerate(records)
    ]
