"""
Execution module for TrialFlow.

This module contains the timeline engine:
- VariableScope / TimelineVariable: chained variable lookup and placeholders
- LeafNode / TimelineNode: timeline descriptions
- TimelineInstance / TraversalCursor: live, resumable traversal state
- TimelineEngine: issues one trial at a time to a trial runner
"""

from .scope import VariableScope, TimelineVariable, render_trial, get_required_variables
from .node import LeafNode, TimelineNode, as_node, node_from_dict, validate_timeline
from .cursor import NodeState, TraversalCursor
from .instances import LeafInstance, TimelineInstance, instantiate
from .iteration_data import IterationData
from .trial import Trial
from .variable_list import RandomizationConfig, VariableList
from .constraints import Constraint, MaxConsecutiveConstraint, BalanceConstraint, NoRepeatConstraint, create_constraint
from .runner import TrialRunner, CallbackRunner, as_runner
from .scheduling import ImmediateScheduler, PygletScheduler, create_scheduler
from .engine import TimelineEngine

__all__ = [
    'VariableScope',
    'TimelineVariable',
    'render_trial',
    'get_required_variables',
    'LeafNode',
    'TimelineNode',
    'as_node',
    'node_from_dict',
    'validate_timeline',
    'NodeState',
    'TraversalCursor',
    'LeafInstance',
    'TimelineInstance',
    'instantiate',
    'IterationData',
    'Trial',
    'RandomizationConfig',
    'VariableList',
    'Constraint',
    'MaxConsecutiveConstraint',
    'BalanceConstraint',
    'NoRepeatConstraint',
    'create_constraint',
    'TrialRunner',
    'CallbackRunner',
    'as_runner',
    'ImmediateScheduler',
    'PygletScheduler',
    'create_scheduler',
    'TimelineEngine',
]
