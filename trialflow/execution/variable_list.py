"""
Timeline variable tables.

A VariableList is the ordered set of variable records that expands a timeline
node into one copy per record. Records come from a CSV file or are given
directly, and may be reordered by a RandomizationConfig before expansion.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging
import os
import random

import pandas as pd

from .constraints import Constraint

logger = logging.getLogger(__name__)

RANDOMIZATION_METHODS = ('none', 'full', 'block', 'latin_square', 'constrained')
MAX_CONSTRAINT_ATTEMPTS = 1000


class RandomizationConfig:
    """
    How variable records are ordered before expansion.

    Methods:
        none: keep record order
        full: shuffle all records
        block: shuffle within groups sharing the 'block' variable
        latin_square: rotate 'condition' groups by participant number (the seed)
        constrained: reshuffle until every constraint accepts the order
    """

    def __init__(self, method: str = 'none', seed: Optional[int] = None,
                 constraints: Optional[List[Constraint]] = None):
        if method not in RANDOMIZATION_METHODS:
            raise ValueError(
                f"Unknown randomization method '{method}' "
                f"(expected one of {', '.join(RANDOMIZATION_METHODS)})"
            )
        self.method = method
        self.seed = seed
        self.constraints: List[Constraint] = list(constraints or [])

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            'method': self.method,
            'seed': self.seed,
            'constraints': [c.to_dict() for c in self.constraints]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RandomizationConfig':
        """Deserialize from dictionary."""
        return cls(
            method=data.get('method', 'none'),
            seed=data.get('seed'),
            constraints=[Constraint.from_dict(c) for c in data.get('constraints', [])]
        )

    def __repr__(self):
        return f"RandomizationConfig(method='{self.method}', seed={self.seed}, constraints={len(self.constraints)})"


class VariableList:
    """
    Ordered variable records for timeline expansion.

    Example:
        words = VariableList.from_csv('words.csv')
        TimelineNode([...], timeline_variables=words)
    """

    def __init__(self, records: Optional[Sequence[Mapping[str, Any]]] = None,
                 source: Optional[str] = None):
        """
        Initialize variable list.

        Args:
            records: Variable records (each a name -> value mapping)
            source: Where the records came from (CSV path), for reporting
        """
        self.source = source
        self.records: List[Dict[str, Any]] = []
        for record in records or []:
            self.add_record(record)

    @classmethod
    def from_csv(cls, path: str, **read_csv_kwargs) -> 'VariableList':
        """
        Load one record per CSV row.

        Args:
            path: CSV file path
            **read_csv_kwargs: Passed through to pandas.read_csv

        Raises:
            FileNotFoundError: If the file does not exist
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Timeline variable CSV not found: {path}")

        df = pd.read_csv(path, **read_csv_kwargs)
        variable_list = cls.from_dataframe(df, source=path)
        logger.info(f"Loaded {len(variable_list)} variable records from {path}")
        return variable_list

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, source: Optional[str] = None) -> 'VariableList':
        """Create one record per DataFrame row."""
        return cls(df.to_dict(orient='records'), source=source)

    def add_record(self, record: Mapping[str, Any]):
        """Append a record (copied)."""
        if not isinstance(record, Mapping):
            raise TypeError(f"Variable record must be a mapping, got {type(record).__name__}")
        self.records.append(dict(record))

    def get_columns(self) -> List[str]:
        """Variable names available in the records, in first-seen order."""
        columns: List[str] = []
        for record in self.records:
            for key in record:
                if key not in columns:
                    columns.append(key)
        return columns

    def get_records(self, randomization: Optional[RandomizationConfig] = None) -> List[Dict[str, Any]]:
        """
        Records in execution order.

        Args:
            randomization: Ordering to apply (None = original order)

        Returns:
            New list of record copies
        """
        records = [dict(record) for record in self.records]
        if randomization is None or randomization.method == 'none':
            return records

        rng = random.Random(randomization.seed)
        method = randomization.method

        if method == 'full':
            rng.shuffle(records)

        elif method == 'constrained':
            records = self._constrained_shuffle(records, randomization, rng)

        elif method == 'block':
            groups: Dict[Any, List[Dict[str, Any]]] = {}
            for record in records:
                groups.setdefault(record.get('block', 0), []).append(record)

            records = []
            for block_id in sorted(groups, key=str):
                block_records = groups[block_id]
                rng.shuffle(block_records)
                records.extend(block_records)

        elif method == 'latin_square':
            participant = randomization.seed if randomization.seed is not None else 1
            conditions: Dict[Any, List[Dict[str, Any]]] = {}
            for record in records:
                conditions.setdefault(record.get('condition', 'default'), []).append(record)

            order = sorted(conditions, key=str)
            if order:
                rotation = participant % len(order)
                order = order[rotation:] + order[:rotation]
            records = [record for condition in order for record in conditions[condition]]

        logger.debug(f"Variable records ordered (method: {method}, seed: {randomization.seed})")
        return records

    @staticmethod
    def _constrained_shuffle(records, randomization, rng):
        if not randomization.constraints:
            rng.shuffle(records)
            return records

        for attempt in range(MAX_CONSTRAINT_ATTEMPTS):
            rng.shuffle(records)
            if all(constraint.check(records) for constraint in randomization.constraints):
                logger.debug(f"Constraints satisfied on attempt {attempt + 1}")
                return records

        logger.warning(
            f"Could not satisfy constraints after {MAX_CONSTRAINT_ATTEMPTS} attempts, "
            f"using best-effort order"
        )
        return records

    def validate(self, required: Sequence[str] = ()) -> List[str]:
        """
        Validate the records.

        Args:
            required: Variable names every record must provide

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if not self.records:
            errors.append("Variable list is empty")
            return errors

        for i, record in enumerate(self.records):
            missing = [name for name in required if name not in record]
            if missing:
                errors.append(f"Record {i}: missing variables {', '.join(sorted(missing))}")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Serialize; CSV-backed lists keep only their source path."""
        if self.source:
            return {'source': self.source}
        return {'records': [dict(record) for record in self.records]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VariableList':
        """Deserialize from dictionary."""
        if data.get('source'):
            return cls.from_csv(data['source'])
        return cls(data.get('records', []))

    def __len__(self):
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def __repr__(self):
        return f"VariableList(source={self.source!r}, records={len(self.records)}, columns={len(self.get_columns())})"
