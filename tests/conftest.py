"""Shared fixtures: small synthetic tables shaped like the WLE CSV files."""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

from pml_analysis.data.data_config import AnalysisConfig, LoaderConfig, ModelConfig


USERS = ['adelmo', 'carlitos', 'charles', 'eurico', 'jeremy', 'pedro']
CLASSES = ['A', 'B', 'C', 'D', 'E']
SENSOR_COLUMNS = [
    'roll_belt', 'pitch_belt', 'yaw_belt', 'total_accel_belt',
    'gyros_arm_x', 'accel_arm_y', 'magnet_dumbbell_z', 'roll_forearm',
]
SPARSE_COLUMNS = ['kurtosis_roll_belt', 'max_roll_belt', 'var_accel_arm']


def make_wle_frame(n_rows=200, labeled=True, seed=0):
    """
    Build a raw table with the WLE layout.

    Summary-statistic columns are only filled on window-start rows (every
    25th row), so they are more than 90% missing. One in four timestamps uses
    a day-first date that does not match the month-first format.
    """
    rng = np.random.default_rng(seed)
    classes = [CLASSES[i % len(CLASSES)] for i in range(n_rows)]
    new_window = ['yes' if i % 25 == 0 else 'no' for i in range(n_rows)]

    data = {
        'user_name': [USERS[i % len(USERS)] for i in range(n_rows)],
        'raw_timestamp_part_1': 1322489729 + np.arange(n_rows),
        'raw_timestamp_part_2': rng.integers(0, 999999, n_rows),
        'cvtd_timestamp': ['30/11/2011 17:11' if i % 4 == 0 else '12/05/2011 11:23' for i in range(n_rows)],
        'new_window': new_window,
        'num_window': 1 + np.arange(n_rows) // 25,
    }
    offsets = np.array([CLASSES.index(c) for c in classes], dtype=float)
    for j, col in enumerate(SENSOR_COLUMNS):
        data[col] = np.round(offsets * (j + 1) + rng.normal(0, 0.3, n_rows), 4)
    for col in SPARSE_COLUMNS:
        values = []
        for i, flag in enumerate(new_window):
            if flag == 'yes':
                values.append('#DIV/0!' if i == 0 else f'{rng.normal():.4f}')
            else:
                values.append('NA' if i % 2 else '')
        data[col] = values

    if labeled:
        data['classe'] = classes
    else:
        data['problem_id'] = np.arange(1, n_rows + 1)

    return pd.DataFrame(data, index=pd.RangeIndex(1, n_rows + 1))


def to_csv_text(df):
    """CSV text with a blank-named leading row-index column."""
    return df.to_csv(index=True)


@pytest.fixture
def train_text():
    return to_csv_text(make_wle_frame(200, labeled=True, seed=1))


@pytest.fixture
def test_text():
    return to_csv_text(make_wle_frame(20, labeled=False, seed=2))


@pytest.fixture
def csv_files(tmp_path, train_text, test_text):
    """Local copies named like the real dataset files."""
    train_path = tmp_path / 'pml-training.csv'
    test_path = tmp_path / 'pml-testing.csv'
    train_path.write_text(train_text)
    test_path.write_text(test_text)
    return str(train_path), str(test_path)


@pytest.fixture
def loader_config():
    return LoaderConfig()


@pytest.fixture
def fast_model_config(tmp_path):
    return ModelConfig(
        cv_folds=3,
        n_jobs=1,
        cache_dir=str(tmp_path / 'models'),
        decision_tree={'max_depth': [3, 5]},
        gradient_boosting={'n_estimators': [10], 'max_depth': [2]},
        random_forest={'n_estimators': [10]},
    )


@pytest.fixture
def analysis_config(tmp_path, csv_files, fast_model_config):
    train_path, test_path = csv_files
    return AnalysisConfig(
        train_source=train_path,
        test_source=test_path,
        output_dir=str(tmp_path / 'results'),
        predictions_dir=str(tmp_path / 'results' / 'predictions'),
        num_predictions=20,
        modeling=fast_model_config,
    )


@pytest.fixture
def wle_frame():
    """Factory for raw WLE-shaped frames."""
    return make_wle_frame
