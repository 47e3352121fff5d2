"""
Pytest configuration and fixtures for TrialFlow tests.

Provides scripted trial runners and sample data for unit and integration tests.
"""

import pytest
import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Add custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: unit test (fast, no I/O)")
    config.addinivalue_line("markers", "integration: integration test (with mocks)")
    config.addinivalue_line("markers", "slow: slow test (real file I/O)")


# ==================== RUNNER HELPERS ====================

class RecordingRunner:
    """
    Trial runner that completes every trial immediately.

    Records each rendered trial spec. The data reported back comes from
    respond(trial_spec, scope); by default it echoes the stimulus.
    """

    def __init__(self, respond=None):
        self.executed = []
        self.scopes = []
        self.respond = respond

    def execute_trial(self, trial_spec, scope, on_complete):
        self.executed.append(trial_spec)
        self.scopes.append(scope)
        if self.respond is not None:
            on_complete(self.respond(trial_spec, scope))
        else:
            on_complete({'stimulus': trial_spec.get('stimulus')})

    @property
    def stimuli(self):
        """Stimulus of every executed trial, in order."""
        return [spec.get('stimulus') for spec in self.executed]


class ManualRunner:
    """
    Trial runner that holds each trial until the test calls finish().

    Lets tests act while a trial is in flight.
    """

    def __init__(self):
        self.executed = []
        self._pending = None

    def execute_trial(self, trial_spec, scope, on_complete):
        self.executed.append(trial_spec)
        self._pending = on_complete

    @property
    def waiting(self):
        """True while a trial is in flight."""
        return self._pending is not None

    @property
    def current(self):
        """Stimulus of the in-flight trial."""
        return self.executed[-1].get('stimulus') if self._pending else None

    @property
    def stimuli(self):
        return [spec.get('stimulus') for spec in self.executed]

    def finish(self, data=None):
        """Complete the in-flight trial."""
        callback, self._pending = self._pending, None
        callback(data if data is not None else {'stimulus': self.executed[-1].get('stimulus')})


def make_trial(stimulus, **kwargs):
    """Shorthand for a leaf with a stimulus parameter."""
    from trialflow.execution.node import LeafNode
    return LeafNode({'stimulus': stimulus}, **kwargs)


# ==================== FIXTURES ====================

@pytest.fixture
def recording_runner():
    """Runner completing trials synchronously."""
    return RecordingRunner()


@pytest.fixture
def manual_runner():
    """Runner completing trials on demand."""
    return ManualRunner()


@pytest.fixture
def sample_variables_csv(tmp_path):
    """
    Create sample timeline-variable CSV for testing.

    Returns:
        str: Path to CSV file
    """
    csv_file = tmp_path / "words.csv"
    csv_file.write_text("""word,condition,block
apple,congruent,1
chair,incongruent,1
river,congruent,2
stone,incongruent,2
""")
    return str(csv_file)


@pytest.fixture
def sample_records():
    """
    Sample timeline-variable records.

    Returns:
        list: Records with word/emotion variables
    """
    return [
        {'word': 'happy', 'emotion': 'positive'},
        {'word': 'grief', 'emotion': 'negative'},
        {'word': 'table', 'emotion': 'neutral'},
    ]

