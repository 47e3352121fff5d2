"""
Timeline node descriptions.

A description is the declarative, authoring-time form of a timeline node:

- LeafNode: one trial specification
- TimelineNode: ordered children plus repetition, loop, conditional and
  timeline-variable expansion settings

Descriptions are validated when constructed and are never mutated by the
engine. Live traversal state belongs to the instances created from them
(see instances.py).

Example:
    words = TimelineNode(
        [LeafNode({'stimulus': TimelineVariable('word')})],
        timeline_variables=[{'word': 'a'}, {'word': 'b'}],
        repetitions=2,
    )
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
import logging

from trialflow.exceptions import InvalidNodeSpec
from .scope import TimelineVariable, get_required_variables
from .variable_list import RandomizationConfig, VariableList

logger = logging.getLogger(__name__)

# Marker used to write TimelineVariable placeholders in plain structures (JSON)
VARIABLE_MARKER = '$variable'

LEAF_HOOKS = ('on_start', 'on_finish')
TIMELINE_KEYS = {
    'timeline', 'name', 'repetitions', 'loop_function', 'conditional_function',
    'timeline_variables', 'randomization',
}


@dataclass
class LeafNode:
    """
    A single trial.

    Attributes:
        trial: Opaque trial specification handed to the trial runner. Dicts,
            lists and tuples may contain TimelineVariable placeholders.
        on_start: Optional hook(trial) called before the trial is executed
        on_finish: Optional hook(trial) called after the trial completed,
            before the next trial is chosen
        name: Optional label for logs
        timeline_variables: Always rejected; leaves have no children to
            expand over
    """
    trial: Any
    on_start: Optional[Callable] = None
    on_finish: Optional[Callable] = None
    name: str = ''
    timeline_variables: Any = field(default=None, repr=False)

    def __post_init__(self):
        if self.timeline_variables is not None:
            raise InvalidNodeSpec(
                "Timeline variables are only allowed on timeline nodes, not on single trials",
                self.name
            )
        if isinstance(self.trial, (LeafNode, TimelineNode)):
            raise InvalidNodeSpec("A trial specification cannot itself be a timeline node", self.name)
        for hook in LEAF_HOOKS:
            value = getattr(self, hook)
            if value is not None and not callable(value):
                raise InvalidNodeSpec(f"{hook} must be callable", self.name)

    @property
    def label(self) -> str:
        return self.name or 'trial'

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to the plain-structure form.

        Mapping trials are written as the mapping itself, anything else as
        {'trial': value}. Hooks are callables and are not serialized.
        """
        encoded = _encode_placeholders(self.trial)
        if isinstance(self.trial, Mapping) and set(self.trial) != {'trial'}:
            return encoded
        return {'trial': encoded}


@dataclass
class TimelineNode:
    """
    An interior timeline node.

    Attributes:
        timeline: Ordered child descriptions (LeafNode, TimelineNode, or plain
            structures accepted by node_from_dict)
        repetitions: Passes over the children when there is no loop_function
        loop_function: Optional predicate(data, scope) -> bool evaluated after
            every pass with that pass's IterationData; True runs another pass.
            When set it replaces repetitions.
        conditional_function: Optional predicate(scope) -> bool evaluated once
            before the first pass; False skips the node
        timeline_variables: Optional records (list of mappings or VariableList);
            the node runs once per record with the record bound in its scope
        randomization: Optional ordering applied to the records
        name: Optional label for logs and data
    """
    timeline: List[Any] = field(default_factory=list)
    repetitions: int = 1
    loop_function: Optional[Callable] = None
    conditional_function: Optional[Callable] = None
    timeline_variables: Optional[Union[Sequence[Mapping[str, Any]], VariableList]] = None
    randomization: Optional[RandomizationConfig] = None
    name: str = ''

    def __post_init__(self):
        if isinstance(self.timeline, (str, bytes, Mapping)) or not isinstance(self.timeline, Sequence):
            raise InvalidNodeSpec("timeline must be a list of node descriptions", self.name)
        self.timeline = [as_node(child) for child in self.timeline]

        if isinstance(self.repetitions, bool) or not isinstance(self.repetitions, int):
            raise InvalidNodeSpec(
                f"repetitions must be an integer, got {type(self.repetitions).__name__}", self.name
            )
        if self.repetitions < 0:
            raise InvalidNodeSpec(f"repetitions must be non-negative, got {self.repetitions}", self.name)

        for predicate in ('loop_function', 'conditional_function'):
            value = getattr(self, predicate)
            if value is not None and not callable(value):
                raise InvalidNodeSpec(f"{predicate} must be callable", self.name)

        if self.timeline_variables is not None and not isinstance(self.timeline_variables, VariableList):
            records = self.timeline_variables
            if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Sequence):
                raise InvalidNodeSpec("timeline_variables must be a list of mappings", self.name)
            for i, record in enumerate(records):
                if not isinstance(record, Mapping):
                    raise InvalidNodeSpec(f"timeline variable record {i} is not a mapping", self.name)
            self.timeline_variables = VariableList(records)

        if self.randomization is not None and not isinstance(self.randomization, RandomizationConfig):
            raise InvalidNodeSpec("randomization must be a RandomizationConfig", self.name)

        if self.loop_function is not None and self.repetitions != 1:
            logger.warning(
                f"Timeline '{self.label}' sets both loop_function and repetitions={self.repetitions}; "
                f"the loop function decides re-entry and repetitions is ignored"
            )

    @property
    def label(self) -> str:
        return self.name or 'timeline'

    def variable_records(self) -> Optional[List[Dict[str, Any]]]:
        """
        Records to expand over, in execution order.

        Returns:
            List of records, or None when the node has no timeline variables
        """
        if self.timeline_variables is None:
            return None
        return self.timeline_variables.get_records(self.randomization)

    def add_node(self, description: Any, index: Optional[int] = None):
        """
        Add a child description while authoring.

        Args:
            description: Child description
            index: Position to insert (None = append to end)
        """
        node = as_node(description)
        if index is None:
            self.timeline.append(node)
        else:
            self.timeline.insert(index, node)

    def get_trial_count(self) -> Optional[int]:
        """
        Number of trials a run would execute.

        Returns:
            Trial count, or None when a loop or conditional makes it depend on
            run-time data
        """
        if self.loop_function is not None or self.conditional_function is not None:
            return None

        per_pass = 0
        for child in self.timeline:
            if isinstance(child, LeafNode):
                per_pass += 1
                continue
            child_count = child.get_trial_count()
            if child_count is None:
                return None
            per_pass += child_count

        copies = 1 if self.timeline_variables is None else len(self.timeline_variables)
        return per_pass * self.repetitions * copies

    def validate(self) -> List[str]:
        """
        Check that every placeholder used below this node can be bound.

        Only variables bound by this node or its descendants are known here;
        use validate_timeline() on the root for a complete check.

        Returns:
            List of error messages (empty if valid)
        """
        return validate_timeline(self)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the plain-structure form (predicates are omitted)."""
        data: Dict[str, Any] = {'timeline': [child.to_dict() for child in self.timeline]}
        if self.name:
            data['name'] = self.name
        if self.repetitions != 1:
            data['repetitions'] = self.repetitions
        if self.timeline_variables is not None:
            variables = self.timeline_variables.to_dict()
            data['timeline_variables'] = variables.get('records', variables)
        if self.randomization is not None:
            data['randomization'] = self.randomization.to_dict()
        return data


NodeDescription = Union[LeafNode, TimelineNode]


def as_node(description: Any) -> NodeDescription:
    """Return description as a LeafNode/TimelineNode, parsing plain structures."""
    if isinstance(description, (LeafNode, TimelineNode)):
        return description
    if isinstance(description, (Mapping, list)):
        return node_from_dict(description)
    raise InvalidNodeSpec(
        f"Expected a timeline node description, got {type(description).__name__}"
    )


def node_from_dict(data: Union[Mapping[str, Any], list]) -> NodeDescription:
    """
    Build a description from plain structures.

    - A list is a timeline node with those children.
    - A mapping with a 'timeline' key is a timeline node.
    - Any other mapping is a leaf; 'on_start' / 'on_finish' become hooks and
      the rest is the trial specification. A mapping whose only key is
      'trial' holds a non-mapping specification.
    - {'$variable': name} anywhere inside a trial is a TimelineVariable.

    Raises:
        InvalidNodeSpec: On unknown timeline keys or timeline variables on a leaf
    """
    if isinstance(data, list):
        return TimelineNode(timeline=data)

    if 'timeline' in data:
        unknown = set(data) - TIMELINE_KEYS
        if unknown:
            raise InvalidNodeSpec(
                f"Unknown timeline keys: {', '.join(sorted(unknown))}", data.get('name')
            )
        randomization = data.get('randomization')
        if isinstance(randomization, Mapping):
            randomization = RandomizationConfig.from_dict(dict(randomization))

        variables = data.get('timeline_variables')
        if isinstance(variables, Mapping):
            variables = VariableList.from_dict(dict(variables))

        return TimelineNode(
            timeline=data['timeline'],
            repetitions=data.get('repetitions', 1),
            loop_function=data.get('loop_function'),
            conditional_function=data.get('conditional_function'),
            timeline_variables=variables,
            randomization=randomization,
            name=data.get('name', ''),
        )

    if 'timeline_variables' in data:
        raise InvalidNodeSpec("Timeline variables are only allowed on timeline nodes, not on single trials")

    hooks = {hook: data[hook] for hook in LEAF_HOOKS if hook in data}
    trial = {key: value for key, value in data.items() if key not in LEAF_HOOKS}
    if set(trial) == {'trial'}:
        trial = trial['trial']
    return LeafNode(trial=_decode_placeholders(trial), **hooks)


def validate_timeline(root: NodeDescription, bound: Sequence[str] = ()) -> List[str]:
    """
    Validate a whole description tree.

    Checks that every TimelineVariable placeholder is bound by some enclosing
    timeline node. Variables referenced only from predicates cannot be seen
    here and are checked at run time.

    Args:
        root: Description to check
        bound: Names bound outside the tree (session variables)

    Returns:
        List of error messages (empty if valid)
    """
    errors: List[str] = []

    def visit(node: NodeDescription, bound: frozenset, path: str):
        if isinstance(node, LeafNode):
            missing = get_required_variables(node.trial) - bound
            if missing:
                errors.append(f"{path} ({node.label}): unbound variables {', '.join(sorted(missing))}")
            return

        names = bound
        if node.timeline_variables is not None:
            columns = node.timeline_variables.get_columns()
            names = bound | frozenset(columns)
            errors.extend(
                f"{path} ({node.label}): {error}"
                for error in node.timeline_variables.validate(columns)
            )
        for i, child in enumerate(node.timeline):
            visit(child, names, f"{path}.{i}")

    visit(root, frozenset(bound), 'root')
    return errors


def _encode_placeholders(value: Any) -> Any:
    if isinstance(value, TimelineVariable):
        return {VARIABLE_MARKER: value.name}
    if isinstance(value, Mapping):
        return {key: _encode_placeholders(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_placeholders(item) for item in value]
    return value


def _decode_placeholders(value: Any) -> Any:
    if isinstance(value, Mapping):
        if set(value) == {VARIABLE_MARKER}:
            return TimelineVariable(value[VARIABLE_MARKER])
        return {key: _decode_placeholders(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_decode_placeholders(item) for item in value]
    return value
