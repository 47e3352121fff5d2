"""
TrialFlow: timeline engine for behavioural experiments.

A timeline is a tree of trials and sub-timelines with repetition, looping,
conditional skipping and timeline-variable expansion. The engine walks it and
hands one trial at a time to a trial runner.
"""

from .exceptions import TrialFlowError, InvalidNodeSpec, UndefinedVariable, EngineStateError
from .execution import (
    VariableScope,
    TimelineVariable,
    LeafNode,
    TimelineNode,
    node_from_dict,
    IterationData,
    Trial,
    RandomizationConfig,
    VariableList,
    TrialRunner,
    CallbackRunner,
    TimelineEngine,
)
from .data_collector import DataCollector
from .experiment import Experiment

__all__ = [
    'TrialFlowError',
    'InvalidNodeSpec',
    'UndefinedVariable',
    'EngineStateError',
    'VariableScope',
    'TimelineVariable',
    'LeafNode',
    'TimelineNode',
    'node_from_dict',
    'IterationData',
    'Trial',
    'RandomizationConfig',
    'VariableList',
    'TrialRunner',
    'CallbackRunner',
    'TimelineEngine',
    'DataCollector',
    'Experiment',
]

__version__ = "0.1.0"
