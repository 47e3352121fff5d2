"""
Engine-level configuration for TrialFlow runs.
"""

from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict
import logging

from trialflow.execution.scheduling import SCHEDULERS

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class EngineConfig:
    """
    Settings for running a timeline.

    Attributes:
        name: Experiment name (used for output filenames)
        scheduler: 'immediate' (default) or 'pyglet'
        record_data: Collect completed trials in a DataCollector
        output_directory: Where CSV output is written
        save_intermediate: Rewrite an intermediate CSV after every trial
        log_level: Level Experiment sets on the trialflow logger
        variables: Session-wide timeline variables bound in the root scope
    """
    name: str = "experiment"
    scheduler: str = "immediate"
    record_data: bool = True
    output_directory: str = "data"
    save_intermediate: bool = False
    log_level: str = "INFO"
    variables: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate configuration values."""
        if self.scheduler not in SCHEDULERS:
            raise ValueError(
                f"scheduler must be one of {', '.join(SCHEDULERS)}, got '{self.scheduler}'"
            )

        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if not isinstance(self.variables, dict):
            raise ValueError("variables must be a dictionary")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """
        Deserialize from dictionary.

        Unknown keys are ignored so older/newer files still load.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


def configure_logging(level: str = "INFO"):
    """Install a basic log handler for command-line runs."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper()),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    )
