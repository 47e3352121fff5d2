"""
Variable scopes for timeline execution.

Each expanded timeline copy owns a VariableScope seeded with its variable
record and chained to the scope of the enclosing timeline. Lookups walk the
chain outwards, so the innermost binding of a name wins.
"""

from typing import Any, Dict, Iterator, Mapping, Optional, Set

from trialflow.exceptions import UndefinedVariable


class VariableScope:
    """
    Chained name -> value mapping.

    Example:
        outer = VariableScope({'word': 'a', 'color': 'red'})
        inner = outer.child({'word': 'b'})
        inner.resolve('word')   # 'b'
        inner.resolve('color')  # 'red'
    """

    def __init__(self, bindings: Optional[Mapping[str, Any]] = None,
                 parent: Optional['VariableScope'] = None):
        """
        Initialize scope.

        Args:
            bindings: Initial local bindings (copied)
            parent: Enclosing scope, or None for a root scope
        """
        self._bindings: Dict[str, Any] = dict(bindings) if bindings else {}
        self.parent = parent

    def resolve(self, name: str) -> Any:
        """
        Look up a variable, walking outwards through parent scopes.

        Args:
            name: Variable name

        Returns:
            Bound value from the innermost scope that defines it

        Raises:
            UndefinedVariable: If no scope in the chain binds the name
        """
        scope = self
        while scope is not None:
            if name in scope._bindings:
                return scope._bindings[name]
            scope = scope.parent
        raise UndefinedVariable(name, self.as_dict().keys())

    def bind(self, name: str, value: Any):
        """Bind a name in this scope only. Parent scopes are never touched."""
        self._bindings[name] = value

    def child(self, bindings: Optional[Mapping[str, Any]] = None) -> 'VariableScope':
        """Create a new scope chained to this one."""
        return VariableScope(bindings, parent=self)

    @property
    def local(self) -> Dict[str, Any]:
        """Copy of the bindings held directly by this scope."""
        return dict(self._bindings)

    @property
    def depth(self) -> int:
        """Number of parents above this scope."""
        depth = 0
        scope = self.parent
        while scope is not None:
            depth += 1
            scope = scope.parent
        return depth

    def as_dict(self) -> Dict[str, Any]:
        """Flatten the chain into one dict; inner bindings override outer ones."""
        chain = []
        scope = self
        while scope is not None:
            chain.append(scope._bindings)
            scope = scope.parent

        flat: Dict[str, Any] = {}
        for bindings in reversed(chain):
            flat.update(bindings)
        return flat

    def __contains__(self, name: str) -> bool:
        scope = self
        while scope is not None:
            if name in scope._bindings:
                return True
            scope = scope.parent
        return False

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_dict())

    def __repr__(self):
        return f"VariableScope(local={self._bindings!r}, depth={self.depth})"


class TimelineVariable:
    """
    Placeholder for a timeline variable inside a trial specification.

    Replaced by the bound value when the trial is rendered for execution.

    Example:
        LeafNode({'stimulus': TimelineVariable('word')})
    """

    __slots__ = ('name',)

    def __init__(self, name: str):
        if not isinstance(name, str) or not name:
            raise ValueError("TimelineVariable name must be a non-empty string")
        self.name = name

    def __eq__(self, other):
        return isinstance(other, TimelineVariable) and other.name == self.name

    def __hash__(self):
        return hash(('TimelineVariable', self.name))

    def __repr__(self):
        return f"TimelineVariable({self.name!r})"


def render_trial(trial: Any, scope: VariableScope) -> Any:
    """
    Substitute TimelineVariable placeholders with their bound values.

    Dicts, lists and tuples are walked recursively and copied; every other
    object is returned as is.

    Args:
        trial: Trial specification
        scope: Scope used for resolution

    Returns:
        Rendered copy of the specification

    Raises:
        UndefinedVariable: If a placeholder names an unbound variable
    """
    if isinstance(trial, TimelineVariable):
        return scope.resolve(trial.name)
    if isinstance(trial, dict):
        return {key: render_trial(value, scope) for key, value in trial.items()}
    if isinstance(trial, list):
        return [render_trial(value, scope) for value in trial]
    if isinstance(trial, tuple):
        return tuple(render_trial(value, scope) for value in trial)
    return trial


def get_required_variables(trial: Any) -> Set[str]:
    """
    Collect the names of all TimelineVariable placeholders in a specification.

    Returns:
        Set of variable names (e.g., {'word', 'color'})
    """
    if isinstance(trial, TimelineVariable):
        return {trial.name}
    if isinstance(trial, dict):
        values = trial.values()
    elif isinstance(trial, (list, tuple)):
        values = trial
    else:
        return set()

    names: Set[str] = set()
    for value in values:
        names.update(get_required_variables(value))
    return names
