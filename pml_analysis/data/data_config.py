"""
Configuration for the Weight Lifting Exercise analysis.

This module defines the configuration dataclasses for every pipeline stage
(loading, splitting, exploration, modeling) and the top-level AnalysisConfig
that is read from and written to YAML.
"""

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .datasets import get_dataset_config


MODEL_TYPES = ('decision_tree', 'gradient_boosting', 'random_forest')


@dataclass
class LoaderConfig:
    """Configuration for fetching and cleaning a source table."""
    na_values: List[str] = field(default_factory=lambda: ['NA', '', '#DIV/0!'])
    index_column: str = 'Unnamed: 0'  # pandas' name for the blank first header
    timestamp_column: str = 'cvtd_timestamp'
    timestamp_format: str = '%m/%d/%Y %H:%M'
    categorical_columns: List[str] = field(default_factory=lambda: ['user_name', 'new_window'])
    label_column: str = 'classe'
    label_levels: List[str] = field(default_factory=lambda: ['A', 'B', 'C', 'D', 'E'])
    id_column: Optional[str] = 'problem_id'  # evaluation-only, moved to the index
    training_marker: str = 'training'  # substring of the locator marking labeled data
    missing_threshold: float = 0.90  # columns at or above this NA fraction are dropped
    request_timeout: float = 60.0

    def validate(self):
        if not 0 < self.missing_threshold <= 1:
            raise ValueError("missing_threshold must be in (0, 1]")
        if not self.training_marker:
            raise ValueError("training_marker must be a non-empty string")
        if not self.label_levels:
            raise ValueError("label_levels must not be empty")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")


@dataclass
class SplitConfig:
    """Configuration for the training/validation split."""
    validation_size: float = 0.3
    random_seed: int = 42

    def validate(self):
        if not 0 < self.validation_size < 1:
            raise ValueError("validation_size must be in (0, 1)")


@dataclass
class ExploreConfig:
    """Configuration for the correlation and PCA exploration."""
    correlation_cutoff: float = 0.8
    top_pairs: int = 20
    pca_variance: float = 0.95  # fraction of variance the retained components explain
    pca_boxplot_components: int = 4

    def validate(self):
        if not 0 < self.correlation_cutoff <= 1:
            raise ValueError("correlation_cutoff must be in (0, 1]")
        if not 0 < self.pca_variance < 1:
            raise ValueError("pca_variance must be in (0, 1)")
        if self.top_pairs <= 0 or self.pca_boxplot_components <= 0:
            raise ValueError("top_pairs and pca_boxplot_components must be positive")


@dataclass
class ModelConfig:
    """Configuration for cross-validated model fitting and caching."""
    models: List[str] = field(default_factory=lambda: list(MODEL_TYPES))
    cv_folds: int = 5
    n_jobs: Optional[int] = -1
    cache_dir: str = 'trained_models'
    refit: bool = False  # ignore cached models and fit again
    tree_plot_depth: int = 3

    # Parameter grids searched with cross-validation
    decision_tree: Dict[str, List[Any]] = field(default_factory=lambda: {
        'max_depth': [5, 10, 20],
        'min_samples_leaf': [1, 5],
    })
    gradient_boosting: Dict[str, List[Any]] = field(default_factory=lambda: {
        'n_estimators': [150],
        'max_depth': [3],
        'learning_rate': [0.1],
    })
    random_forest: Dict[str, List[Any]] = field(default_factory=lambda: {
        'n_estimators': [100],
        'max_features': ['sqrt'],
    })

    def param_grid(self, model_type: str) -> Dict[str, List[Any]]:
        """Return the search grid for a model type."""
        if model_type not in MODEL_TYPES:
            raise ValueError(f"Unknown model type '{model_type}'. Must be one of: {list(MODEL_TYPES)}")
        return getattr(self, model_type)

    def validate(self):
        unknown = set(self.models) - set(MODEL_TYPES)
        if unknown:
            raise ValueError(f"Unknown model types: {sorted(unknown)}. Valid: {list(MODEL_TYPES)}")
        if not self.models:
            raise ValueError("At least one model type must be enabled")
        if self.cv_folds < 2:
            raise ValueError("cv_folds must be at least 2")


@dataclass
class AnalysisConfig:
    """
    Main configuration for the analysis run.

    Sources default to the registered dataset URLs; `train_source` and
    `test_source` override them with any URL or local path.
    """
    dataset: str = 'pml'
    train_source: Optional[str] = None
    test_source: Optional[str] = None
    output_dir: str = 'results/pml'
    predictions_dir: str = 'results/pml/predictions'
    num_predictions: int = 20

    loader: LoaderConfig = field(default_factory=LoaderConfig)
    split: SplitConfig = field(default_factory=SplitConfig)
    explore: ExploreConfig = field(default_factory=ExploreConfig)
    modeling: ModelConfig = field(default_factory=ModelConfig)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'AnalysisConfig':
        """Load configuration from YAML file."""
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
        return cls.from_dict(config_dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AnalysisConfig':
        config_dict = dict(config_dict)

        # Parse nested configs
        if 'loader' in config_dict:
            config_dict['loader'] = LoaderConfig(**config_dict['loader'])
        if 'split' in config_dict:
            config_dict['split'] = SplitConfig(**config_dict['split'])
        if 'explore' in config_dict:
            config_dict['explore'] = ExploreConfig(**config_dict['explore'])
        if 'modeling' in config_dict:
            config_dict['modeling'] = ModelConfig(**config_dict['modeling'])

        return cls(**config_dict)

    def to_yaml(self, yaml_path: str):
        """Save configuration to YAML file."""
        Path(yaml_path).parent.mkdir(parents=True, exist_ok=True)
        with open(yaml_path, 'w') as f:
            yaml.dump(dataclasses.asdict(self), f, default_flow_style=False, sort_keys=False)

    def validate(self) -> bool:
        """Validate configuration."""
        if self.num_predictions < 0:
            raise ValueError("num_predictions must be non-negative")
        get_dataset_config(self.dataset)
        self.loader.validate()
        self.split.validate()
        self.explore.validate()
        self.modeling.validate()
        return True
