"""
Experiment class for TrialFlow.

Top-level orchestrator tying a timeline, a trial runner, an engine
configuration and data collection together.
"""

from typing import Any, Dict, List, Optional
import logging

from trialflow.exceptions import InvalidNodeSpec
from .config import EngineConfig, load_experiment
from .data_collector import DataCollector
from .execution.engine import TimelineEngine
from .execution.node import as_node, validate_timeline
from .execution.scheduling import create_scheduler

logger = logging.getLogger(__name__)


class Experiment:
    """
    Top-level experiment orchestrator.

    Responsibilities:
    - Build the engine with the configured scheduler
    - Coordinate data collection
    - Handle global experiment events (abort)

    Lifecycle:
    1. __init__: timeline description, runner and configuration
    2. validate: check that every timeline variable can be bound
    3. run: start the engine (and the pyglet loop for the pyglet scheduler)
    4. data is written when the timeline finishes
    """

    def __init__(self, timeline: Any, runner: Any, config: Optional[EngineConfig] = None,
                 data_collector: Optional[DataCollector] = None):
        """
        Initialize experiment.

        Args:
            timeline: Root timeline description
            runner: Trial runner (see TimelineEngine)
            config: Engine configuration (defaults to EngineConfig())
            data_collector: Collector to use instead of the configured one
        """
        self.config = config if config is not None else EngineConfig()
        logging.getLogger('trialflow').setLevel(self.config.log_level)
        self.timeline = as_node(timeline)

        if data_collector is None and self.config.record_data:
            data_collector = DataCollector(
                self.config.output_directory,
                self.config.name,
                save_intermediate=self.config.save_intermediate
            )
        self.data_collector = data_collector

        self.engine = TimelineEngine(
            runner,
            scheduler=create_scheduler(self.config.scheduler),
            data_collector=self.data_collector,
            variables=self.config.variables
        )
        self.engine.on_finish.append(self._on_timeline_finished)
        self.engine.on_halt.append(self._on_timeline_halted)

        self.aborted: bool = False
        self.data_file: Optional[str] = None

    @classmethod
    def from_file(cls, filepath: str, runner: Any) -> 'Experiment':
        """Load timeline and configuration from a JSON experiment file."""
        timeline, config = load_experiment(filepath)
        return cls(timeline, runner, config)

    def set_subject_info(self, subject_id: int, session: int):
        """
        Set subject and session information.

        Both are bound as timeline variables and used for output filenames.

        Args:
            subject_id: Subject identifier (0 to disable data saving)
            session: Session number (0 to disable data saving)
        """
        self.engine.root_scope.bind('subject_id', subject_id)
        self.engine.root_scope.bind('session', session)
        if self.data_collector is not None:
            self.data_collector.set_subject_info(subject_id, session)

    def validate(self) -> List[str]:
        """
        Validate experiment configuration.

        Returns:
            List of error messages (empty if valid)
        """
        return validate_timeline(self.timeline, bound=self.engine.root_scope.as_dict().keys())

    def run(self):
        """
        Validate and start the timeline.

        With the immediate scheduler this returns once the runner stops
        completing trials synchronously. With the pyglet scheduler it runs
        pyglet.app.run() until the timeline finishes. An experiment aborted
        before run() runs nothing.

        Raises:
            InvalidNodeSpec: If validation fails
        """
        if self.aborted:
            logger.info("Experiment aborted before start - no trials run")
            return

        errors = self.validate()
        if errors:
            for error in errors:
                logger.error(f"Validation: {error}")
            raise InvalidNodeSpec(f"Experiment validation failed with {len(errors)} errors", self.config.name)

        logger.info(f"Starting experiment: {self.config.name}")
        self.engine.start(self.timeline)

        if self.config.scheduler == 'pyglet' and not self.engine.is_finished():
            import pyglet
            pyglet.app.run()

    def abort(self):
        """
        Stop after the running trial.

        The root timeline is terminated, so no further trial is issued.
        Collected data is still saved.
        """
        self.aborted = True
        if self.engine.root is not None:
            self.engine.root.terminate()
        logger.info("Abort requested - finishing after the current trial")

    def _on_timeline_finished(self, engine: TimelineEngine):
        if self.data_collector is not None:
            self.data_file = self.data_collector.save_all()

        if self.config.scheduler == 'pyglet':
            import pyglet
            pyglet.app.exit()

        logger.info(f"Experiment finished: {self.config.name}")

    def _on_timeline_halted(self, engine: TimelineEngine, error: BaseException):
        """Keep the trials completed before the error."""
        if self.data_collector is not None:
            self.data_file = self.data_collector.save_all()

        if self.config.scheduler == 'pyglet':
            import pyglet
            pyglet.app.exit()

        logger.warning(f"Experiment halted: {self.config.name} ({type(error).__name__}: {error})")

    def get_progress(self) -> Dict[str, Any]:
        """
        Get current experiment progress.

        Returns:
            Dictionary with progress information
        """
        progress = self.engine.progress()
        progress['name'] = self.config.name
        progress['aborted'] = self.aborted
        return progress

    def __repr__(self):
        return f"Experiment(name='{self.config.name}', engine={self.engine!r})"
