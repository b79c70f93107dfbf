"""
Dataset sources for the analysis.

Each registered dataset names a labeled training table and an unlabeled
evaluation table. The training locator must contain the loader's training
marker so that the label column is kept when it is cleaned.
"""

from dataclasses import dataclass
from typing import Dict


@dataclass
class DatasetConfig:
    """Locations and description of a registered dataset."""
    name: str
    display_name: str
    train_url: str
    test_url: str
    description: str = ''


DATASET_REGISTRY: Dict[str, DatasetConfig] = {
    'pml': DatasetConfig(
        name='pml',
        display_name='Weight Lifting Exercises',
        train_url='https://d396qusza40orc.cloudfront.net/predmachlearn/pml-training.csv',
        test_url='https://d396qusza40orc.cloudfront.net/predmachlearn/pml-testing.csv',
        description=(
            'Belt, arm, dumbbell and forearm sensor readings of six participants '
            'performing unilateral dumbbell biceps curls in five fashions '
            '(A = correct, B-E = common mistakes).'
        ),
    ),
}


def get_dataset_config(name: str) -> DatasetConfig:
    """Get the configuration of a registered dataset."""
    if name not in DATASET_REGISTRY:
        raise ValueError(
            f'Dataset name "{name}" is not registered. Must be one of: {list(DATASET_REGISTRY.keys())}'
        )
    return DATASET_REGISTRY[name]
