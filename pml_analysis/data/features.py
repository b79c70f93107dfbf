"""Predictor selection and training/validation splitting."""

import logging
from typing import List, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from ..errors import SchemaError

logger = logging.getLogger(__name__)


# Bookkeeping columns that identify the subject, time and window of a reading
METADATA_COLUMNS = (
    'user_name',
    'raw_timestamp_part_1',
    'raw_timestamp_part_2',
    'cvtd_timestamp',
    'new_window',
    'num_window',
)


def check_column_sets(train_df: pd.DataFrame, test_df: pd.DataFrame, label_column: str = 'classe'):
    """Ensure cleaned training and evaluation tables differ only by the label column."""
    if label_column not in train_df.columns:
        raise SchemaError(f"Training table has no label column '{label_column}'")
    if label_column in test_df.columns:
        raise SchemaError(f"Evaluation table unexpectedly has label column '{label_column}'")

    train_cols = set(train_df.columns) - {label_column}
    test_cols = set(test_df.columns)
    if train_cols != test_cols:
        raise SchemaError(
            "Training and evaluation columns differ: "
            f"only in training={sorted(train_cols - test_cols)}, "
            f"only in evaluation={sorted(test_cols - train_cols)}"
        )


def select_predictors(df: pd.DataFrame, label_column: str = 'classe') -> List[str]:
    """Numeric sensor columns, excluding metadata and the label, in table order."""
    predictors = [
        col for col in df.columns
        if col != label_column
        and col not in METADATA_COLUMNS
        and pd.api.types.is_numeric_dtype(df[col])
        and not pd.api.types.is_bool_dtype(df[col])
    ]
    if not predictors:
        raise SchemaError("No numeric predictor columns left after cleaning")
    logger.info(f"Selected {len(predictors)} predictors")
    return predictors


def build_matrix(df: pd.DataFrame, predictors: List[str]) -> pd.DataFrame:
    """Predictor matrix as float64; missing predictor values are rejected."""
    missing = [col for col in predictors if col not in df.columns]
    if missing:
        raise SchemaError(f"Predictor columns absent from table: {missing}")

    X = df[predictors].astype(np.float64)
    n_missing = int(X.isna().any(axis=1).sum())
    if n_missing:
        raise SchemaError(f"{n_missing} rows have missing predictor values")
    return X


def labeled_rows(df: pd.DataFrame, label_column: str = 'classe') -> pd.DataFrame:
    """Drop rows whose label is missing (e.g. out-of-level values)."""
    if label_column not in df.columns:
        raise SchemaError(f"Table has no label column '{label_column}'")
    mask = df[label_column].notna()
    n_dropped = int((~mask).sum())
    if n_dropped:
        logger.warning(f"Dropping {n_dropped} rows without a label")
    return df[mask]


def split_training(
    df: pd.DataFrame,
    label_column: str = 'classe',
    validation_size: float = 0.3,
    random_seed: int = 42
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Stratified split of the labeled table into training and validation parts."""
    df = labeled_rows(df, label_column)
    training, validation = train_test_split(
        df,
        test_size=validation_size,
        stratify=df[label_column],
        random_state=random_seed,
    )
    logger.info(f"Training rows: {len(training)}, validation rows: {len(validation)}")
    return training, validation
