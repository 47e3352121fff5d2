"""
Timeline engine for TrialFlow.

Walks a timeline description and issues exactly one trial at a time to a
trial runner, waiting for the runner's completion callback before choosing
the next trial.

Example:
    def run(trial, scope, done):
        done({'rt': present(trial)})

    engine = TimelineEngine(run)
    engine.start([
        {'stimulus': 'welcome'},
        TimelineNode([...], timeline_variables=[{'word': 'a'}, {'word': 'b'}]),
    ])
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from trialflow.exceptions import EngineStateError
from .instances import LeafInstance, TimelineInstance
from .node import LeafNode, NodeDescription, TimelineNode, as_node
from .runner import TrialRunner, as_runner
from .scheduling import ImmediateScheduler
from .scope import VariableScope
from .trial import Trial

logger = logging.getLogger(__name__)


class TimelineEngine:
    """
    Drives a timeline, one trial at a time.

    Responsibilities:
    - Instantiate the root timeline and advance its cursors
    - Render each trial and hand it to the runner
    - Record completed trials for loop functions and the data collector
    - Apply append_node / terminate_active_node at advance boundaries

    Lifecycle:
    1. __init__: runner, scheduler, optional data collector
    2. start: validate the root description and issue the first trial
    3. runner calls on_complete(data) for every trial
    4. is_finished() becomes True once the root timeline is exhausted
    """

    def __init__(self, runner: Any, scheduler=None, data_collector=None,
                 variables: Optional[Mapping[str, Any]] = None):
        """
        Initialize engine.

        Args:
            runner: TrialRunner, object with execute_trial(), or a callable
                function(trial_spec, scope, on_complete)
            scheduler: Object with call_soon(callback); ImmediateScheduler by default
            data_collector: Optional DataCollector receiving every completed trial
            variables: Session-wide variables bound in the root scope
        """
        self.runner: TrialRunner = as_runner(runner)
        self.scheduler = scheduler if scheduler is not None else ImmediateScheduler()
        self.data_collector = data_collector
        self.root_scope = VariableScope(variables)

        self.root: Optional[TimelineInstance] = None
        self.trials: List[Trial] = []

        # Listeners for the surrounding program
        self.on_trial_start: List[Callable[[Trial], None]] = []
        self.on_trial_finish: List[Callable[[Trial], None]] = []
        self.on_finish: List[Callable[['TimelineEngine'], None]] = []
        self.on_halt: List[Callable[['TimelineEngine', BaseException], None]] = []

        # Runtime state
        self.halted: bool = False
        self._active_leaf: Optional[LeafInstance] = None
        self._finished: bool = False

    # ==================== CONTROL SURFACE ====================

    def start(self, root_description: Any):
        """
        Start running a timeline.

        Args:
            root_description: TimelineNode, LeafNode, list of descriptions, or
                plain structure accepted by node_from_dict

        Raises:
            InvalidNodeSpec: If the description is malformed (nothing is run)
            EngineStateError: If the engine was already started
        """
        if self.root is not None:
            raise EngineStateError("Engine already started")

        root = self._as_root(root_description)
        self.root = TimelineInstance(root, self.root_scope)
        logger.info(f"Starting timeline '{root.label}' ({len(root.timeline)} top-level nodes)")

        self.scheduler.call_soon(self._advance)

    def append_node(self, description: Any):
        """
        Append a node to the end of the root timeline.

        The node runs after every node already scheduled at the root level.
        Appends are kept in call order.

        Raises:
            InvalidNodeSpec: If the description is malformed
            EngineStateError: If the engine has not been started
        """
        if self.root is None:
            raise EngineStateError("Cannot append nodes before start()")

        node = as_node(description)
        if self._finished:
            logger.warning(f"Timeline already finished; ignoring appended node '{node.label}'")
            return

        self.root.append_child(node)
        logger.debug(f"Appended '{node.label}' as root child {len(self.root.children) - 1}")

    def terminate_active_node(self):
        """
        End the timeline that directly contains the running trial.

        The running trial is never interrupted; the timeline is skipped from
        the next advance on, and traversal continues with its parent's next
        step. No-op when no trial is active.
        """
        if self._active_leaf is None:
            logger.debug("terminate_active_node() with no active trial ignored")
            return

        timeline = self._active_leaf.parent
        timeline.terminate()
        logger.debug(f"{timeline.label}: termination requested")

    def is_finished(self) -> bool:
        """True once the root timeline is exhausted."""
        return self._finished

    # ==================== INSPECTION ====================

    @property
    def active_trial(self) -> Optional[Trial]:
        """Trial currently handed to the runner, if any."""
        if self._active_leaf is None:
            return None
        return self._active_leaf.trial

    def active_path(self) -> List[TimelineInstance]:
        """Timeline instances from the root down to the active trial's parent."""
        if self._active_leaf is None:
            return []
        return list(reversed(self._active_leaf.ancestors()))

    def progress(self) -> Dict[str, Any]:
        """
        Get current run progress.

        Returns:
            Dictionary with progress information
        """
        active = self.active_trial
        return {
            'trials_started': len(self.trials),
            'trials_completed': sum(1 for trial in self.trials if trial.completed),
            'active_trial': active.trial_index if active else None,
            'active_path': [timeline.label for timeline in self.active_path()],
            'finished': self._finished,
            'halted': self.halted,
        }

    # ==================== ADVANCE LOOP ====================

    def _advance(self):
        """Find and start the next trial, or finish the run."""
        if self._finished or self.halted:
            return

        self._active_leaf = None
        try:
            leaf = self.root.next_leaf()
            if leaf is None:
                self._finish()
                return
            self._run_leaf(leaf)
        except Exception as error:
            self._halt(error, "Timeline halted by an error while choosing or starting the next trial")
            raise

    def _run_leaf(self, leaf: LeafInstance):
        trial = Trial(
            trial_index=len(self.trials),
            spec=leaf.render(),
            variables=leaf.scope.as_dict(),
            node_path=leaf.path
        )
        leaf.trial = trial
        self.trials.append(trial)
        self._active_leaf = leaf

        if leaf.description.on_start is not None:
            leaf.description.on_start(trial)
        for listener in self.on_trial_start:
            listener(trial)

        logger.debug(f"Trial {trial.trial_index} ({leaf.description.label}) at {trial.path_label}")
        trial.mark_start()

        def on_complete(data: Any = None):
            self._complete(leaf, data)

        self.runner.execute_trial(trial.spec, leaf.scope, on_complete)

    def _complete(self, leaf: LeafInstance, data: Any):
        """Handle the runner's completion callback for leaf."""
        trial = leaf.trial
        if leaf is not self._active_leaf or trial.completed:
            raise EngineStateError(
                f"Completion reported for trial {trial.trial_index}, which is not the active trial"
            )

        trial.mark_end(data)
        # Only looping ancestors keep pass data
        for timeline in leaf.ancestors():
            timeline.record_trial(trial)

        try:
            if self.data_collector is not None:
                self.data_collector.save_trial(trial)
            if leaf.description.on_finish is not None:
                leaf.description.on_finish(trial)
            for listener in self.on_trial_finish:
                listener(trial)
        except Exception as error:
            self._halt(error, f"Timeline halted by an error after trial {trial.trial_index}")
            raise

        self.scheduler.call_soon(self._advance)

    def _halt(self, error: BaseException, message: str):
        """Mark the run halted and notify on_halt listeners once."""
        # A synchronous runner re-raises through _advance; only report the first
        if self.halted:
            return
        self.halted = True
        self._active_leaf = None
        logger.error(message)
        for listener in self.on_halt:
            listener(self, error)

    def _finish(self):
        self._finished = True
        self._active_leaf = None
        logger.info(f"Timeline finished after {len(self.trials)} trials")
        for listener in self.on_finish:
            listener(self)

    @staticmethod
    def _as_root(description: Any) -> TimelineNode:
        """Root must be a single TimelineNode that does not expand."""
        node: NodeDescription = as_node(description)
        if isinstance(node, LeafNode) or node.timeline_variables is not None:
            return TimelineNode([node], name='root')
        return node

    def __repr__(self):
        state = 'finished' if self._finished else 'halted' if self.halted else 'running' if self.root else 'idle'
        return f"TimelineEngine(state={state}, trials={len(self.trials)})"
