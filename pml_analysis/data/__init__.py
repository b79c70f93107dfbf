"""Data loading, cleaning and preparation components."""

from .data_config import AnalysisConfig, LoaderConfig, SplitConfig, ExploreConfig, ModelConfig
from .data_load_clean import load_and_clean, fetch_text, parse_table, clean_table
from .datasets import get_dataset_config, DATASET_REGISTRY

__all__ = [
    'AnalysisConfig', 'LoaderConfig', 'SplitConfig', 'ExploreConfig', 'ModelConfig',
    'load_and_clean', 'fetch_text', 'parse_table', 'clean_table',
    'get_dataset_config', 'DATASET_REGISTRY'
]
