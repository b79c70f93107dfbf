"""Decision tree diagram."""

import logging
from pathlib import Path
from typing import List

import matplotlib.pyplot as plt
from sklearn.tree import plot_tree

logger = logging.getLogger(__name__)


def plot_decision_tree(estimator, feature_names: List[str], class_names: List[str],
                       output_path: Path, max_depth: int = 3):
    """Draw the top `max_depth` levels of a fitted decision tree."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(24, 12))
    plot_tree(
        estimator,
        max_depth=max_depth,
        feature_names=feature_names,
        class_names=[str(c) for c in class_names],
        filled=True,
        rounded=True,
        impurity=False,
        proportion=True,
        fontsize=8,
        ax=ax,
    )
    ax.set_title('Decision tree (top levels)', fontsize=16, fontweight='bold')
    plt.savefig(output_path, dpi=120, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"Decision tree diagram saved: {output_path}")
    return output_path
