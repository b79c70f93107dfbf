"""
Tree-based classifiers fitted with cross-validated parameter search.

All modeling is delegated to scikit-learn: the search grid comes from
ModelConfig, the folds are stratified, and the best parameters are refit on
the full training part.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingClassifier, RandomForestClassifier
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.tree import DecisionTreeClassifier

from ..data.data_config import ModelConfig

logger = logging.getLogger(__name__)


class ModelType(Enum):
    """Modeling approaches, each cached under its own file name."""
    DECISION_TREE = "decision_tree"
    GRADIENT_BOOSTING = "gradient_boosting"
    RANDOM_FOREST = "random_forest"

    @property
    def display_name(self) -> str:
        return self.value.replace('_', ' ').title()


@dataclass
class FittedModel:
    """A refit estimator together with its cross-validation results."""
    model_type: ModelType
    estimator: Any
    cv_accuracy: float
    cv_accuracy_std: float
    best_params: Dict[str, Any] = field(default_factory=dict)

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.estimator.predict(X)


def build_estimator(model_type: ModelType, random_seed: int = 42):
    """Unfitted estimator for a model type."""
    if model_type == ModelType.DECISION_TREE:
        return DecisionTreeClassifier(random_state=random_seed)
    elif model_type == ModelType.GRADIENT_BOOSTING:
        return GradientBoostingClassifier(random_state=random_seed)
    elif model_type == ModelType.RANDOM_FOREST:
        return RandomForestClassifier(random_state=random_seed, n_jobs=1)
    raise ValueError(f"Unsupported model type: {model_type}")


def fit_with_cv(
    model_type: ModelType,
    X: pd.DataFrame,
    y: pd.Series,
    config: ModelConfig,
    random_seed: int = 42
) -> FittedModel:
    """Grid-search the configured parameters with stratified k-fold CV and refit."""
    y = np.asarray(y)
    folds = StratifiedKFold(n_splits=config.cv_folds, shuffle=True, random_state=random_seed)
    search = GridSearchCV(
        estimator=build_estimator(model_type, random_seed),
        param_grid=config.param_grid(model_type.value),
        scoring='accuracy',
        cv=folds,
        n_jobs=config.n_jobs,
        refit=True,
    )
    logger.info(f"Fitting {model_type.display_name} with {config.cv_folds}-fold cross-validation")
    search.fit(X, y)

    best = search.best_index_
    fitted = FittedModel(
        model_type=model_type,
        estimator=search.best_estimator_,
        cv_accuracy=float(search.cv_results_['mean_test_score'][best]),
        cv_accuracy_std=float(search.cv_results_['std_test_score'][best]),
        best_params=dict(search.best_params_),
    )
    logger.info(
        f"{model_type.display_name}: CV accuracy {fitted.cv_accuracy:.4f} "
        f"(+/- {fitted.cv_accuracy_std:.4f}), params {fitted.best_params}"
    )
    return fitted
