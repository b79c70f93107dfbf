import numpy as np
import pandas as pd
import pytest
import requests

from pml_analysis.data import data_load_clean
from pml_analysis.data.data_config import LoaderConfig
from pml_analysis.data.data_load_clean import (
    clean_table,
    describe_cleaning,
    fetch_text,
    is_training_source,
    load_and_clean,
    missing_fractions,
    parse_table,
    sparse_columns,
)
from pml_analysis.errors import FetchError, ParseError, SchemaError


class FakeResponse:
    def __init__(self, text='', status_code=200):
        self.text = text
        self.status_code = status_code


# fetch

def test_fetch_local_file(tmp_path):
    path = tmp_path / 'table.csv'
    path.write_text('a,b\n1,2\n')
    assert fetch_text(str(path)) == 'a,b\n1,2\n'


def test_fetch_missing_local_file_raises(tmp_path):
    with pytest.raises(FetchError) as exc_info:
        fetch_text(str(tmp_path / 'missing.csv'))
    assert 'missing.csv' in str(exc_info.value)


def test_fetch_url_returns_body(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse('a,b\n1,2\n')

    monkeypatch.setattr(data_load_clean.requests, 'get', fake_get)
    assert fetch_text('https://example.org/pml-training.csv', timeout=5) == 'a,b\n1,2\n'
    assert calls == [('https://example.org/pml-training.csv', 5)]


def test_fetch_url_non_200_raises(monkeypatch):
    monkeypatch.setattr(data_load_clean.requests, 'get',
                        lambda url, timeout: FakeResponse('Not found', status_code=404))
    with pytest.raises(FetchError, match='404'):
        fetch_text('https://example.org/pml-training.csv')


def test_fetch_url_connection_error_raises(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError('connection refused')

    monkeypatch.setattr(data_load_clean.requests, 'get', fake_get)
    with pytest.raises(FetchError, match='connection refused'):
        fetch_text('http://example.org/pml-testing.csv')


# parse

def test_parse_treats_only_configured_tokens_as_missing():
    text = 'a,b,c,d\n1,NA,#DIV/0!,\n2,N/A,null,x\n'
    df = parse_table(text)
    assert df['b'].isna().tolist() == [True, False]
    assert df['c'].isna().tolist() == [True, False]
    assert df['d'].isna().tolist() == [True, False]
    # pandas' default NA tokens are not markers here
    assert df.loc[1, 'b'] == 'N/A'
    assert df.loc[1, 'c'] == 'null'


def test_parse_div0_column_is_numeric():
    df = parse_table('a,b\n1,#DIV/0!\n2,0.5\n')
    assert pd.api.types.is_float_dtype(df['b'])


def test_parse_row_with_extra_field_raises():
    with pytest.raises(ParseError) as exc_info:
        parse_table('a,b\n1,2\n3,4,5\n', locator='bad.csv')
    assert exc_info.value.line == 3
    assert 'expected 2 fields, saw 3' in str(exc_info.value)


def test_parse_row_with_missing_field_raises():
    with pytest.raises(ParseError):
        parse_table('a,b,c\n1,2,3\n4,5\n')


def test_parse_empty_input_raises():
    with pytest.raises(ParseError):
        parse_table('')


def test_parse_quoted_commas_are_one_field():
    df = parse_table('a,b\n"x,y",2\n')
    assert df.loc[0, 'a'] == 'x,y'


# clean

def test_concrete_missing_fraction_scenario():
    """9 of 10 missing is dropped (0.90 is not below 0.90), 8 of 10 is kept."""
    df = pd.DataFrame({
        'nine_missing': [1.0] + [np.nan] * 9,
        'eight_missing': [1.0, 2.0] + [np.nan] * 8,
        'full': np.arange(10, dtype=float),
    })
    cleaned = clean_table(df, 'pml-testing.csv')
    assert 'nine_missing' not in cleaned.columns
    assert 'eight_missing' in cleaned.columns
    assert 'full' in cleaned.columns


def test_kept_and_dropped_columns_respect_threshold(wle_frame, loader_config):
    raw = parse_table(wle_frame(200, labeled=True).to_csv())
    cleaned = clean_table(raw, 'pml-training.csv', loader_config)

    fractions = missing_fractions(cleaned)
    assert (fractions < loader_config.missing_threshold).all()

    raw_fractions = missing_fractions(raw)
    dropped = [c for c in raw.columns if c not in cleaned.columns and c != loader_config.index_column]
    assert dropped == ['kurtosis_roll_belt', 'max_roll_belt', 'var_accel_arm']
    assert (raw_fractions[dropped] >= loader_config.missing_threshold).all()


def test_threshold_is_configurable():
    df = pd.DataFrame({'half': [1.0, np.nan, 2.0, np.nan], 'full': [1.0, 2.0, 3.0, 4.0]})
    cleaned = clean_table(df, 'x.csv', LoaderConfig(missing_threshold=0.5))
    assert list(cleaned.columns) == ['full']


def test_row_index_column_is_dropped(wle_frame):
    raw = parse_table(wle_frame(30).to_csv())
    assert 'Unnamed: 0' in raw.columns
    for locator in ('pml-training.csv', 'pml-testing.csv'):
        cleaned = clean_table(raw, locator)
        assert 'Unnamed: 0' not in cleaned.columns
        assert 'row_index' not in cleaned.columns


def test_absent_row_index_column_is_not_an_error():
    df = pd.DataFrame({'a': [1, 2]})
    assert list(clean_table(df, 'x.csv').columns) == ['a']


def test_timestamp_parsing_is_total():
    df = pd.DataFrame({
        'cvtd_timestamp': ['12/05/2011 11:23', '30/11/2011 17:11', 'garbage', np.nan, '11/28/2011 14:13'],
        'value': [1.0, 2.0, 3.0, 4.0, 5.0],
    })
    cleaned = clean_table(df, 'x.csv')
    ts = cleaned['cvtd_timestamp']
    assert pd.api.types.is_datetime64_any_dtype(ts)
    assert ts.iloc[0] == pd.Timestamp(2011, 12, 5, 11, 23)
    assert ts.iloc[4] == pd.Timestamp(2011, 11, 28, 14, 13)
    assert ts.iloc[1:4].isna().all()


def test_subject_and_window_columns_are_categorical(wle_frame):
    cleaned = clean_table(parse_table(wle_frame(50).to_csv()), 'pml-training.csv')
    assert isinstance(cleaned['user_name'].dtype, pd.CategoricalDtype)
    assert isinstance(cleaned['new_window'].dtype, pd.CategoricalDtype)
    assert set(cleaned['new_window'].cat.categories) == {'no', 'yes'}


def test_label_present_only_for_training_locator(wle_frame):
    raw = parse_table(wle_frame(50, labeled=True).to_csv())

    train = clean_table(raw, 'https://host/pml-training.csv')
    assert 'classe' in train.columns
    assert list(train['classe'].cat.categories) == ['A', 'B', 'C', 'D', 'E']

    other = clean_table(raw, 'https://host/pml-testing.csv')
    assert 'classe' not in other.columns


def test_labeled_override_beats_locator(wle_frame):
    raw = parse_table(wle_frame(50, labeled=True).to_csv())
    assert 'classe' in clean_table(raw, 'data/train.csv', labeled=True).columns
    assert 'classe' not in clean_table(raw, 'data/pml-training.csv', labeled=False).columns


def test_training_marker_is_configurable():
    assert is_training_source('pml-training.csv')
    assert not is_training_source('pml-testing.csv')
    assert is_training_source('data/train.csv', training_marker='train')


def test_training_source_without_label_raises(wle_frame):
    raw = parse_table(wle_frame(20, labeled=False).to_csv())
    with pytest.raises(SchemaError, match='classe'):
        clean_table(raw, 'pml-training.csv')


def test_out_of_level_labels_become_missing():
    df = pd.DataFrame({'classe': ['A', 'F', 'E'], 'value': [1.0, 2.0, 3.0]})
    cleaned = clean_table(df, 'pml-training.csv')
    assert cleaned['classe'].isna().tolist() == [False, True, False]


def test_sparse_label_rejects_training_table():
    df = pd.DataFrame({'classe': ['A'] + [np.nan] * 9, 'value': np.arange(10.0)})
    with pytest.raises(SchemaError, match='unusable'):
        clean_table(df, 'pml-training.csv')


def test_out_of_level_labels_count_toward_label_sparsity():
    df = pd.DataFrame({'classe': ['A'] + ['F'] * 9, 'value': np.arange(10.0)})
    with pytest.raises(SchemaError, match='classe'):
        clean_table(df, 'pml-training.csv')


def test_label_below_threshold_is_kept_and_all_columns_dense():
    df = pd.DataFrame({'classe': ['A', 'B'] + [np.nan] * 8, 'value': np.arange(10.0)})
    cleaned = clean_table(df, 'pml-training.csv')
    assert 'classe' in cleaned.columns
    assert (missing_fractions(cleaned) < 0.9).all()


def test_problem_id_moves_to_index(wle_frame):
    cleaned = clean_table(parse_table(wle_frame(20, labeled=False).to_csv()), 'pml-testing.csv')
    assert 'problem_id' not in cleaned.columns
    assert cleaned.index.name == 'problem_id'
    assert list(cleaned.index) == list(range(1, 21))


def test_train_and_test_column_sets_match(csv_files, loader_config):
    train_path, test_path = csv_files
    train = load_and_clean(train_path, loader_config)
    test = load_and_clean(test_path, loader_config)
    assert set(train.columns) - {'classe'} == set(test.columns)


def test_loading_twice_is_identical(csv_files):
    train_path, _ = csv_files
    first = load_and_clean(train_path)
    second = load_and_clean(train_path)
    pd.testing.assert_frame_equal(first, second)
    assert first.to_csv() == second.to_csv()


def test_clean_does_not_modify_raw(wle_frame):
    raw = parse_table(wle_frame(30).to_csv())
    snapshot = raw.copy()
    clean_table(raw, 'pml-training.csv')
    pd.testing.assert_frame_equal(raw, snapshot)


def test_sparse_columns_on_empty_frame():
    assert sparse_columns(pd.DataFrame({'a': []})) == []


def test_describe_cleaning_lists_sparse_columns(wle_frame):
    raw = parse_table(wle_frame(100).to_csv())
    cleaned = clean_table(raw, 'pml-training.csv')
    summary = describe_cleaning(raw, cleaned)
    assert summary['dropped_sparse_columns'] == ['kurtosis_roll_belt', 'max_roll_belt', 'var_accel_arm']
    assert summary['raw_shape'] == raw.shape
    assert summary['clean_shape'] == cleaned.shape
    assert summary['min_dropped_missing_fraction'] >= 0.9


def test_load_and_clean_from_url(monkeypatch, train_text):
    monkeypatch.setattr(data_load_clean.requests, 'get',
                        lambda url, timeout: FakeResponse(train_text))
    cleaned = load_and_clean('https://example.org/pml-training.csv')
    assert 'classe' in cleaned.columns
    assert len(cleaned) == 200
