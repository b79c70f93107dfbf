""" Functions to download and clean the Weight Lifting Exercise tables.

Both tables are plain CSV files with a header row. The first (blank-named)
column is a row index, `cvtd_timestamp` is a formatted date-time string and,
in the training table only, `classe` holds the exercise-quality label.

Main function:
- load_and_clean(locator, config)

Helper functions are:
- fetch_text()
- parse_table()
- clean_table()
- missing_fractions() / sparse_columns()
- describe_cleaning()

Print color: `magenta`

Example usage:
  ```python
  from pml_analysis.data.data_load_clean import load_and_clean

  df_train = load_and_clean(
    "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-training.csv"
  )
  ```
"""

import csv
from io import StringIO
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd
import requests
from termcolor import colored

from ..errors import FetchError, ParseError, SchemaError
from .data_config import LoaderConfig


ROW_INDEX_NAME = 'row_index'


def _is_url(locator):
  return locator.startswith('http://') or locator.startswith('https://')


def fetch_text(locator, timeout=60.0):
  """Fetch the raw text of a table from a URL or a local path.

  Args:
    locator (str): `http(s)://` URL or filesystem path.
    timeout (float): Request timeout in seconds (URLs only).

  Returns:
    str: The file contents.

  Raises:
    FetchError: The resource is unreachable, answered with a non-200 status,
      or the local file cannot be read.
  """
  if _is_url(locator):
    print(colored(f"Downloading {locator.split('/')[-1]}...", 'magenta'))
    try:
      response = requests.get(locator, timeout=timeout)
    except requests.RequestException as e:
      raise FetchError(locator, str(e)) from e
    if response.status_code != 200:
      raise FetchError(locator, f'HTTP status {response.status_code}')
    return response.text

  try:
    return Path(locator).read_text(encoding='utf-8')
  except (OSError, UnicodeDecodeError) as e:
    raise FetchError(locator, str(e)) from e


def _check_field_counts(text, locator):
  """Raise ParseError on the first row whose field count differs from the header."""
  reader = csv.reader(StringIO(text))
  try:
    header = next(reader, None)
    if header is None:
      raise ParseError(locator, 'no header row')
    for row in reader:
      # Blank lines are skipped by the table parser as well
      if not row:
        continue
      if len(row) != len(header):
        raise ParseError(
          locator,
          f'expected {len(header)} fields, saw {len(row)}',
          line=reader.line_num
        )
  except csv.Error as e:
    raise ParseError(locator, str(e), line=reader.line_num) from e


def parse_table(text, locator='<memory>', config=None):
  """Parse CSV text into a raw DataFrame.

  Only the tokens in `config.na_values` (`NA`, empty string, `#DIV/0!`) are
  treated as missing; pandas' own default NA tokens are disabled.

  Raises:
    ParseError: Empty input or a row whose column count differs from the header.
  """
  config = config or LoaderConfig()
  _check_field_counts(text, locator)
  try:
    df_raw = pd.read_csv(
      StringIO(text),
      na_values=config.na_values,
      keep_default_na=False,
    )
  except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
    raise ParseError(locator, str(e)) from e
  print(colored(f'Raw data shape: {df_raw.shape}', 'magenta'))
  return df_raw


def is_training_source(locator, training_marker='training'):
  """Whether the locator names a labeled (training) table."""
  return training_marker in locator


def missing_fractions(df):
  """Fraction of missing values per column."""
  return df.isna().mean()


def sparse_columns(df, threshold=0.90):
  """Columns whose missing fraction is at or above `threshold`, in table order."""
  if df.empty:
    return []
  fractions = missing_fractions(df)
  return [col for col in df.columns if fractions[col] >= threshold]


def _cast_label(df, config, locator):
  label = config.label_column
  if label not in df.columns:
    raise SchemaError(
      f"Label column '{label}' is required for training source '{locator}' but is absent"
    )
  values = df[label]
  labels = pd.Categorical(values, categories=config.label_levels)
  n_invalid = int((values.notna() & pd.isna(labels)).sum())
  if n_invalid:
    print(colored(
      f'{n_invalid} rows have a label outside {config.label_levels}; set to missing',
      'yellow'
    ))
  df[label] = labels
  return df


def clean_table(df_raw, locator='<memory>', config=None, labeled=None):
  """Clean a raw table.

  Steps, in order:
    1. rename the row-index column to `row_index` and drop it
    2. parse the timestamp column (unparseable cells become NaT)
    3. cast the subject-name and window-flag columns to `category`
    4. for labeled sources cast the label to the A-E categories, otherwise
       remove it
    5. move the evaluation id column (if present) into the index
    6. drop every column whose missing fraction is at or above
       `config.missing_threshold`; a labeled table whose label is that sparse
       is rejected

  Args:
    df_raw (pd.DataFrame): Output of `parse_table()`.
    locator (str): Where the table came from; decides labeled vs unlabeled.
    config (LoaderConfig): Loader configuration.
    labeled (bool, optional): Overrides the locator naming convention.

  Returns:
    pd.DataFrame: The cleaned table.
  """
  config = config or LoaderConfig()
  if labeled is None:
    labeled = is_training_source(locator, config.training_marker)

  df = df_raw.copy()

  if config.index_column in df.columns:
    df = (df
      .rename(columns={config.index_column: ROW_INDEX_NAME})
      .drop(columns=ROW_INDEX_NAME)
    )

  if config.timestamp_column in df.columns:
    df[config.timestamp_column] = pd.to_datetime(
      df[config.timestamp_column],
      format=config.timestamp_format,
      errors='coerce'
    )

  for col in config.categorical_columns:
    if col in df.columns:
      df[col] = df[col].astype('category')

  if labeled:
    df = _cast_label(df, config, locator)
  elif config.label_column in df.columns:
    df = df.drop(columns=config.label_column)

  if config.id_column and config.id_column in df.columns:
    df = df.set_index(config.id_column)

  if labeled and missing_fractions(df)[config.label_column] >= config.missing_threshold:
    raise SchemaError(
      f"Label column '{config.label_column}' of '{locator}' is unusable: "
      f"at least {config.missing_threshold:.0%} of its values are missing"
    )

  df = df.drop(columns=sparse_columns(df, config.missing_threshold))

  return df


def describe_cleaning(df_raw, df_clean, config=None) -> Dict[str, Any]:
  """Summarize what cleaning removed, for reporting."""
  config = config or LoaderConfig()
  removed = [
    col for col in df_raw.columns
    if col not in df_clean.columns
    and col not in (config.index_column, config.label_column, config.id_column)
  ]
  fractions = missing_fractions(df_raw)
  return {
    'raw_shape': tuple(df_raw.shape),
    'clean_shape': tuple(df_clean.shape),
    'dropped_sparse_columns': removed,
    'min_dropped_missing_fraction': float(fractions[removed].min()) if removed else None,
  }


def load_and_clean(locator, config: Optional[LoaderConfig] = None, labeled: Optional[bool] = None):
  """Fetch, parse and clean one table.

  Given a URL or path to a WLE CSV table, this function returns a cleaned
  DataFrame. Whether the label column is kept follows the training naming
  convention of the locator unless `labeled` is given.

  Raises:
    FetchError: The table cannot be retrieved.
    ParseError: The table is not well-formed CSV.
    SchemaError: A labeled source has no usable label column.
  """
  config = config or LoaderConfig()
  text = fetch_text(locator, timeout=config.request_timeout)
  df_raw = parse_table(text, locator, config)
  df = clean_table(df_raw, locator, config, labeled=labeled)
  print(colored(f'Cleaned data shape: {df.shape}', 'magenta'))
  return df

