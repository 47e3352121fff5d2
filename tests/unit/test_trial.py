"""
Unit tests for Trial records and IterationData.
"""

import pytest
from trialflow.execution.iteration_data import IterationData
from trialflow.execution.trial import Trial


def completed(index, result, **variables):
    trial = Trial(index, {'stimulus': index}, variables, node_path=((index, 0),))
    trial.mark_start()
    trial.mark_end(result)
    return trial


# ==================== TRIAL CLASS TESTS ====================

@pytest.mark.unit
def test_trial_creation():
    """Trial should initialize with index, spec and variables."""
    trial = Trial(trial_index=0, spec={'stimulus': 'a'}, variables={'word': 'a'})

    assert trial.trial_index == 0
    assert trial.spec == {'stimulus': 'a'}
    assert trial.variables == {'word': 'a'}
    assert trial.result is None
    assert trial.completed is False


@pytest.mark.unit
def test_trial_mark_start_and_end():
    """Trial should record times and the runner's data."""
    trial = Trial(0, {})
    trial.mark_start()

    trial.mark_end({'rt': 350})

    assert trial.start_time is not None
    assert trial.end_time is not None
    assert trial.result == {'rt': 350}
    assert trial.completed
    assert trial.get_duration() >= 0


@pytest.mark.unit
def test_trial_duration_none_until_completed():
    trial = Trial(0, {})
    trial.mark_start()

    assert trial.get_duration() is None


@pytest.mark.unit
def test_trial_path_label():
    """Node paths render as child-copy pairs joined by dots."""
    trial = Trial(0, {}, node_path=((0, 1), (2, 0)))

    assert trial.path_label == '0-1.2-0'
    assert Trial(0, {}).path_label == ''


@pytest.mark.unit
def test_trial_serialization():
    """Trial should serialize to dict."""
    trial = Trial(5, {'stimulus': 'x'}, {'word': 'x'}, node_path=((1, 0),))
    trial.mark_start()
    trial.mark_end({'rating': 7})

    trial_dict = trial.to_dict()

    assert trial_dict['trial_index'] == 5
    assert trial_dict['node_path'] == '1-0'
    assert trial_dict['spec'] == {'stimulus': 'x'}
    assert trial_dict['variables'] == {'word': 'x'}
    assert trial_dict['result'] == {'rating': 7}


# ==================== ITERATION DATA ====================

@pytest.mark.unit
def test_iteration_data_values():
    """Indexing and iteration yield runner data in order."""
    data = IterationData([completed(0, {'correct': True}), completed(1, {'correct': False})])

    assert data.count() == 2
    assert len(data) == 2
    assert data[0] == {'correct': True}
    assert data[-1] == {'correct': False}
    assert data[0:1] == [{'correct': True}]
    assert list(data) == [{'correct': True}, {'correct': False}]
    assert data.last() == {'correct': False}
    assert [t.trial_index for t in data.trials()] == [0, 1]


@pytest.mark.unit
def test_iteration_data_empty():
    data = IterationData()

    assert data.count() == 0
    assert data.last() is None
    assert data.values() == []


@pytest.mark.unit
def test_iteration_data_to_dataframe():
    """Mapping results become columns next to the variables."""
    data = IterationData([
        completed(0, {'rt': 300}, word='a'),
        completed(1, 'timeout', word='b'),
    ])

    df = data.to_dataframe()

    assert list(df['word']) == ['a', 'b']
    assert df.loc[0, 'rt'] == 300
    assert df.loc[1, 'result'] == 'timeout'
    assert list(df['node_path']) == ['0-0', '1-0']
