"""
Trial runner boundary.

The engine hands one rendered trial at a time to a runner and waits for the
runner to call on_complete(data) exactly once. What the runner does in
between (drawing, playing audio, waiting for key presses) is invisible to
the engine.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

from .scope import VariableScope


class TrialRunner(ABC):
    """Abstract base class for trial runners."""

    @abstractmethod
    def execute_trial(self, trial_spec: Any, scope: VariableScope,
                      on_complete: Callable[[Any], None]):
        """
        Run one trial (non-blocking or blocking, either is fine).

        Args:
            trial_spec: Rendered trial specification
            scope: Variable scope of the trial
            on_complete: Callback(data) to call exactly once when the trial
                has finished; data is kept verbatim
        """
        pass


class CallbackRunner(TrialRunner):
    """
    Adapts a plain function(trial_spec, scope, on_complete) to TrialRunner.

    Example:
        def run(trial, scope, done):
            done({'response': present(trial)})

        engine = TimelineEngine(CallbackRunner(run))
    """

    def __init__(self, function: Callable[[Any, VariableScope, Callable[[Any], None]], None]):
        if not callable(function):
            raise TypeError("CallbackRunner requires a callable")
        self.function = function

    def execute_trial(self, trial_spec, scope, on_complete):
        self.function(trial_spec, scope, on_complete)

    def __repr__(self):
        name = getattr(self.function, '__name__', repr(self.function))
        return f"CallbackRunner({name})"


def as_runner(runner: Any) -> TrialRunner:
    """Accept a TrialRunner, any object with execute_trial(), or a plain callable."""
    if isinstance(runner, TrialRunner) or callable(getattr(runner, 'execute_trial', None)):
        return runner
    if callable(runner):
        return CallbackRunner(runner)
    raise TypeError(f"Expected a trial runner, got {type(runner).__name__}")
