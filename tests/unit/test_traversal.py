"""
Unit tests for live timeline instances and traversal cursors.

Drives TimelineInstance.next_leaf() directly, without an engine, to check
cursor state transitions and expansion into per-record copies.
"""

import pytest
from trialflow.execution.cursor import NodeState, TraversalCursor
from trialflow.execution.instances import LeafInstance, TimelineInstance, instantiate
from trialflow.execution.node import TimelineNode
from trialflow.execution.scope import VariableScope, TimelineVariable
from trialflow.execution.trial import Trial
from conftest import make_trial


def drain(instance):
    """Collect the rendered stimuli of every leaf, completing each one."""
    stimuli = []
    leaf = instance.next_leaf()
    while leaf is not None:
        spec = leaf.render()
        stimuli.append(spec['stimulus'])
        trial = Trial(len(stimuli) - 1, spec, leaf.scope.as_dict(), leaf.path)
        trial.mark_end({'stimulus': spec['stimulus']})
        for timeline in leaf.ancestors():
            timeline.record_trial(trial)
        leaf = instance.next_leaf()
    return stimuli


# ==================== CURSOR ====================

@pytest.mark.unit
def test_cursor_defaults():
    cursor = TraversalCursor()

    assert cursor.state is NodeState.GATING
    assert cursor.child_index == 0
    assert cursor.expansion_index == 0
    assert not cursor.terminated
    assert not cursor.is_exhausted


@pytest.mark.unit
def test_cursor_moves():
    cursor = TraversalCursor(child_index=2, expansion_index=3)

    cursor.next_child()
    assert (cursor.child_index, cursor.expansion_index) == (3, 0)

    cursor.restart_pass()
    assert (cursor.child_index, cursor.expansion_index) == (0, 0)


@pytest.mark.unit
def test_cursor_to_dict():
    data = TraversalCursor(state=NodeState.ACTIVE, loop_count=2).to_dict()

    assert data['state'] == 'active'
    assert data['loop_count'] == 2


# ==================== INSTANTIATION ====================

@pytest.mark.unit
def test_instantiate_leaf():
    scope = VariableScope({'a': 1})

    [leaf] = instantiate(make_trial('x'), scope, path=((3, 1),), child_index=2)

    assert isinstance(leaf, LeafInstance)
    assert leaf.scope is scope
    assert leaf.path == ((3, 1), (2, 0))


@pytest.mark.unit
def test_instantiate_without_records_shares_scope():
    scope = VariableScope({'a': 1})

    [copy] = instantiate(TimelineNode([make_trial('x')]), scope)

    assert isinstance(copy, TimelineInstance)
    assert copy.scope is scope


@pytest.mark.unit
def test_instantiate_one_copy_per_record():
    """Each record gets its own child scope, cursor and path."""
    scope = VariableScope({'outer': True})
    node = TimelineNode([make_trial('x')], timeline_variables=[{'word': 'a'}, {'word': 'b'}])

    copies = instantiate(node, scope, child_index=1)

    assert [c.scope.resolve('word') for c in copies] == ['a', 'b']
    assert all(c.scope.parent is scope for c in copies)
    assert [c.path for c in copies] == [((1, 0),), ((1, 1),)]
    assert copies[0].cursor is not copies[1].cursor


@pytest.mark.unit
def test_instantiate_empty_records():
    node = TimelineNode([make_trial('x')], timeline_variables=[])

    assert instantiate(node, VariableScope()) == []


# ==================== NEXT LEAF ====================

@pytest.mark.unit
def test_next_leaf_walks_children_and_repetitions():
    instance = TimelineInstance(
        TimelineNode([make_trial('a'), TimelineNode([make_trial('b')])], repetitions=2),
        VariableScope()
    )

    assert drain(instance) == ['a', 'b', 'a', 'b']
    assert instance.is_exhausted
    assert instance.cursor.repetition == 2


@pytest.mark.unit
def test_next_leaf_after_exhaustion_returns_none():
    instance = TimelineInstance(TimelineNode([make_trial('a')]), VariableScope())

    drain(instance)

    assert instance.next_leaf() is None
    assert instance.next_leaf() is None


@pytest.mark.unit
def test_state_transitions():
    """GATING until first advanced, ACTIVE while walking, EXHAUSTED at the end."""
    instance = TimelineInstance(TimelineNode([make_trial('a')]), VariableScope())
    assert instance.cursor.state is NodeState.GATING

    leaf = instance.next_leaf()
    assert leaf is not None
    assert instance.cursor.state is NodeState.ACTIVE

    assert instance.next_leaf() is None
    assert instance.cursor.state is NodeState.EXHAUSTED


@pytest.mark.unit
def test_false_conditional_exhausts_without_leaves():
    instance = TimelineInstance(
        TimelineNode([make_trial('a')], conditional_function=lambda scope: False),
        VariableScope()
    )

    assert instance.next_leaf() is None
    assert instance.is_exhausted


@pytest.mark.unit
def test_loop_counts_passes():
    answers = iter([True, True, False])
    instance = TimelineInstance(
        TimelineNode([make_trial('a')], loop_function=lambda data, scope: next(answers)),
        VariableScope()
    )

    assert drain(instance) == ['a', 'a', 'a']
    assert instance.cursor.loop_count == 2


@pytest.mark.unit
def test_terminate_flag_exhausts_at_next_advance():
    instance = TimelineInstance(TimelineNode([make_trial('a'), make_trial('b')]), VariableScope())

    instance.next_leaf()
    instance.terminate()

    assert instance.cursor.terminated
    assert instance.next_leaf() is None
    assert instance.is_exhausted


@pytest.mark.unit
def test_copies_resolve_their_own_record():
    instance = TimelineInstance(
        TimelineNode([
            TimelineNode([make_trial(TimelineVariable('word'))], timeline_variables=[{'word': 'a'}, {'word': 'b'}])
        ]),
        VariableScope()
    )

    assert drain(instance) == ['a', 'b']


@pytest.mark.unit
def test_leaf_ancestors_innermost_first():
    root = TimelineInstance(TimelineNode([TimelineNode([make_trial('x')], name='inner')], name='outer'), VariableScope())

    leaf = root.next_leaf()

    assert [a.description.name for a in leaf.ancestors()] == ['inner', 'outer']
    assert root.label == 'outer[root]'
    assert leaf.parent.label == 'inner[0-0]'


@pytest.mark.unit
def test_append_child_does_not_touch_description():
    description = TimelineNode([make_trial('a')])
    instance = TimelineInstance(description, VariableScope())

    instance.append_child({'stimulus': 'b'})

    assert len(description.timeline) == 1
    assert drain(instance) == ['a', 'b']
