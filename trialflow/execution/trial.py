"""
Trial record for TrialFlow.

Represents one executed leaf of the timeline.
"""

from typing import Any, Dict, Optional, Tuple
import time


class Trial:
    """
    Represents a single trial execution.

    Contains:
    - trial_index: Position in the run (0-based, in execution order)
    - spec: Rendered trial specification handed to the runner
    - variables: Timeline variables visible to the trial
    - node_path: (child_index, expansion_index) per timeline level
    - result: Data reported by the runner, kept verbatim
    """

    def __init__(self, trial_index: int, spec: Any, variables: Optional[Dict[str, Any]] = None,
                 node_path: Tuple[Tuple[int, int], ...] = ()):
        """
        Initialize trial.

        Args:
            trial_index: Position in the run
            spec: Rendered trial specification
            variables: Flattened timeline variables for this trial
            node_path: Location of the leaf in the timeline tree
        """
        self.trial_index = trial_index
        self.spec = spec
        self.variables: Dict[str, Any] = dict(variables or {})
        self.node_path = node_path
        self.result: Any = None
        self.completed: bool = False
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def mark_start(self):
        """Mark the trial as started."""
        self.start_time = time.time()

    def mark_end(self, result: Any = None):
        """Mark the trial as completed with the runner's data."""
        self.end_time = time.time()
        self.result = result
        self.completed = True

    def get_duration(self) -> Optional[float]:
        """
        Get trial duration in seconds.

        Returns:
            Duration in seconds, or None if not completed
        """
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return None

    @property
    def path_label(self) -> str:
        """Node path as text, e.g. '0-1.2-0' (child-copy per level)."""
        return '.'.join(f"{child}-{copy}" for child, copy in self.node_path)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize trial to dictionary.

        Returns:
            Dictionary with all trial information
        """
        return {
            'trial_index': self.trial_index,
            'node_path': self.path_label,
            'spec': self.spec,
            'variables': self.variables,
            'result': self.result,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration': self.get_duration()
        }

    def __repr__(self):
        return f"Trial(index={self.trial_index}, path='{self.path_label}', completed={self.completed})"
