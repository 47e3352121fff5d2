"""
DataCollector class for TrialFlow.

Handles trial data collection and CSV output.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import logging
import os

import pandas as pd

from .execution.trial import Trial

logger = logging.getLogger(__name__)


class DataCollector:
    """
    Collects completed trials and writes them to CSV.

    Responsibilities:
    - Flatten each completed trial into one record
    - Save intermediate data after every trial (crash recovery)
    - Write the final CSV output
    """

    def __init__(self, output_dir: str = ".", experiment_name: str = "experiment",
                 save_intermediate: bool = False):
        """
        Initialize data collector.

        Args:
            output_dir: Directory to save data files (created on first save)
            experiment_name: Experiment name for filenames
            save_intermediate: Rewrite an intermediate CSV after every trial
        """
        self.output_directory = output_dir
        self.experiment_name = experiment_name
        self.save_intermediate = save_intermediate
        self.trials_data: List[Dict[str, Any]] = []

        # Subject/session info for filename generation
        self.subject_id: Optional[int] = None
        self.session: Optional[int] = None
        self.data_saving_enabled: bool = True

    def set_subject_info(self, subject_id: int, session: int):
        """
        Set subject and session information for filename generation.

        Args:
            subject_id: Subject identifier (0 to disable data saving)
            session: Session number (0 to disable data saving)
        """
        self.subject_id = subject_id
        self.session = session

        self.data_saving_enabled = not (subject_id == 0 or session == 0)
        if self.data_saving_enabled:
            logger.info(f"Subject: {subject_id}, Session: {session}")
        else:
            logger.info("Data saving disabled (subject_id or session = 0)")

    def _get_output_filename(self, suffix: str) -> str:
        if self.subject_id is not None and self.session is not None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"sub-{self.subject_id:03d}_ses-{self.session:02d}_{timestamp}_{suffix}.csv"
        else:
            filename = f"{self.experiment_name}_{suffix}.csv"

        return os.path.join(self.output_directory, filename)

    @staticmethod
    def trial_record(trial: Trial) -> Dict[str, Any]:
        """
        Flatten a trial into one output row.

        Timeline variables become columns; dict results are spread into
        columns (overriding variables of the same name), anything else is
        stored under 'result'.
        """
        record: Dict[str, Any] = {
            'trial_index': trial.trial_index,
            'node_path': trial.path_label,
            'start_time': trial.start_time,
            'end_time': trial.end_time,
            'duration': trial.get_duration()
        }
        record.update(trial.variables)

        if isinstance(trial.result, dict):
            record.update(trial.result)
        elif trial.result is not None:
            record['result'] = trial.result

        return record

    def save_trial(self, trial: Trial):
        """
        Record one completed trial.

        Args:
            trial: Completed Trial
        """
        if not trial.completed:
            logger.warning(f"Trial {trial.trial_index} has not completed; not recorded")
            return

        self.trials_data.append(self.trial_record(trial))

        if self.save_intermediate:
            self._save_intermediate()

        logger.debug(f"Recorded trial {trial.trial_index}")

    def get_dataframe(self) -> pd.DataFrame:
        """All recorded trials as a DataFrame (one row per trial)."""
        return pd.DataFrame(self.trials_data)

    def save_all(self) -> Optional[str]:
        """
        Write the complete dataset to CSV.

        Returns:
            Path of the written file, or None when nothing was written
        """
        if not self.data_saving_enabled:
            logger.info("Data saving disabled - no files will be written")
            return None

        if not self.trials_data:
            logger.info("No trials recorded - no files written")
            return None

        os.makedirs(self.output_directory, exist_ok=True)
        trials_file = self._get_output_filename("trials")
        self.get_dataframe().to_csv(trials_file, index=False)
        logger.info(f"Saved {len(self.trials_data)} trials to {trials_file}")
        return trials_file

    def _save_intermediate(self):
        """Save intermediate data for crash recovery."""
        if not self.data_saving_enabled or not self.trials_data:
            return

        os.makedirs(self.output_directory, exist_ok=True)
        self.get_dataframe().to_csv(self._get_output_filename("intermediate"), index=False)

    def get_trial_count(self) -> int:
        """Number of trials recorded."""
        return len(self.trials_data)

    def clear(self):
        """Clear all collected data."""
        self.trials_data.clear()
        logger.debug("Data cleared")

    def __repr__(self):
        return f"DataCollector(experiment='{self.experiment_name}', trials={len(self.trials_data)})"
