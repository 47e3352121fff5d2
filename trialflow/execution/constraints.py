"""
Ordering constraints for randomized timeline variables.

A constraint inspects a proposed order of variable records and accepts or
rejects it. Constrained randomization reshuffles until every constraint
accepts the order.
"""

from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence

Record = Mapping[str, Any]


class Constraint(ABC):
    """Abstract base class for record ordering constraints."""

    type_name = ''

    @abstractmethod
    def check(self, records: Sequence[Record]) -> bool:
        """
        Check if the proposed record order satisfies this constraint.

        Args:
            records: Variable records in the proposed order

        Returns:
            True if satisfied, False otherwise
        """
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Serialize constraint to dictionary."""
        pass

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Constraint':
        """
        Deserialize constraint from dictionary.

        Args:
            data: Dictionary with 'type' key and type-specific parameters

        Returns:
            Constraint instance
        """
        params = {key: value for key, value in data.items() if key != 'type'}
        return create_constraint(data.get('type'), **params)


class MaxConsecutiveConstraint(Constraint):
    """
    Limits runs of records sharing a value.

    Example:
        # No more than 2 consecutive 'happy' records
        MaxConsecutiveConstraint(attribute='emotion', value='happy', limit=2)

        # No more than 3 consecutive records with any same emotion
        MaxConsecutiveConstraint(attribute='emotion', limit=3)
    """

    type_name = 'max_consecutive'

    def __init__(self, attribute: str, value: Optional[Any] = None, limit: int = 1):
        """
        Args:
            attribute: Variable to check (e.g., 'emotion')
            value: Specific value to limit (None = any repeated value)
            limit: Longest run allowed
        """
        self.attribute = attribute
        self.value = value
        self.limit = limit

    def check(self, records: Sequence[Record]) -> bool:
        run = 0
        previous = object()

        for record in records:
            current = record.get(self.attribute)
            if self.value is not None and current != self.value:
                run = 0
            elif current == previous:
                run += 1
            else:
                run = 1

            if run > self.limit:
                return False
            previous = current

        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type_name,
            'attribute': self.attribute,
            'value': self.value,
            'limit': self.limit
        }

    def __repr__(self) -> str:
        if self.value is None:
            return f"MaxConsecutive({self.attribute}, limit={self.limit})"
        return f"MaxConsecutive({self.attribute}={self.value}, limit={self.limit})"


class BalanceConstraint(Constraint):
    """
    Requires equal counts of the listed values (or of all values seen).

    Example:
        BalanceConstraint(attribute='emotion', values=['happy', 'sad'])
    """

    type_name = 'balance'

    def __init__(self, attribute: str, values: Optional[List[Any]] = None):
        self.attribute = attribute
        self.values = values

    def check(self, records: Sequence[Record]) -> bool:
        counts = Counter(record.get(self.attribute) for record in records)

        if self.values is not None:
            wanted = set(self.values)
            counts = Counter({key: count for key, count in counts.items() if key in wanted})

        return len(set(counts.values())) <= 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type_name,
            'attribute': self.attribute,
            'values': self.values
        }

    def __repr__(self) -> str:
        if self.values is None:
            return f"Balance({self.attribute})"
        return f"Balance({self.attribute}, values={self.values})"


class NoRepeatConstraint(Constraint):
    """
    Prevents a value from reappearing within a window of records.

    Example:
        # The same word can't come back within 3 records
        NoRepeatConstraint(attribute='word', within_trials=3)
    """

    type_name = 'no_repeat'

    def __init__(self, attribute: str, within_trials: int):
        self.attribute = attribute
        self.within_trials = within_trials

    def check(self, records: Sequence[Record]) -> bool:
        last_seen: Dict[Any, int] = {}

        for position, record in enumerate(records):
            value = record.get(self.attribute)
            if value in last_seen and position - last_seen[value] < self.within_trials:
                return False
            last_seen[value] = position

        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type_name,
            'attribute': self.attribute,
            'within_trials': self.within_trials
        }

    def __repr__(self) -> str:
        return f"NoRepeat({self.attribute}, within={self.within_trials})"


CONSTRAINT_TYPES = {
    cls.type_name: cls
    for cls in (MaxConsecutiveConstraint, BalanceConstraint, NoRepeatConstraint)
}


def create_constraint(constraint_type: str, **kwargs) -> Constraint:
    """
    Factory function to create constraints.

    Examples:
        >>> create_constraint('max_consecutive', attribute='emotion', value='happy', limit=2)
        >>> create_constraint('balance', attribute='emotion')
        >>> create_constraint('no_repeat', attribute='word', within_trials=3)
    """
    try:
        cls = CONSTRAINT_TYPES[constraint_type]
    except KeyError:
        raise ValueError(f"Unknown constraint type: {constraint_type}") from None
    return cls(**kwargs)
