"""
Data handed to loop functions.

IterationData holds the trials completed during the most recent pass over a
timeline node, including trials of nested timelines. The runner's data values
are passed through untouched.
"""

from typing import Any, Iterator, List, Optional, Sequence

import pandas as pd

from .trial import Trial


class IterationData(Sequence):
    """
    Read-only view of one pass's trial data.

    Indexing and iteration yield the runner's data values in execution order.

    Example:
        def keep_going(data, scope):
            return data.count() < 3 and data.last()['correct'] is False
    """

    def __init__(self, trials: Sequence[Trial] = ()):
        self._trials: List[Trial] = list(trials)

    def count(self) -> int:
        """Number of trials completed in the pass."""
        return len(self._trials)

    def values(self) -> List[Any]:
        """Runner data values, in execution order."""
        return [trial.result for trial in self._trials]

    def last(self) -> Optional[Any]:
        """Data of the most recent trial, or None for an empty pass."""
        if not self._trials:
            return None
        return self._trials[-1].result

    def trials(self) -> List[Trial]:
        """Underlying Trial records."""
        return list(self._trials)

    def to_dataframe(self) -> pd.DataFrame:
        """
        One row per trial.

        Mapping results are spread into columns; other results go into a
        'result' column.
        """
        rows = []
        for trial in self._trials:
            row = {'trial_index': trial.trial_index, 'node_path': trial.path_label}
            row.update(trial.variables)
            if isinstance(trial.result, dict):
                row.update(trial.result)
            else:
                row['result'] = trial.result
            rows.append(row)
        return pd.DataFrame(rows)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [trial.result for trial in self._trials[index]]
        return self._trials[index].result

    def __len__(self) -> int:
        return len(self._trials)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values())

    def __repr__(self):
        return f"IterationData(count={len(self._trials)})"
