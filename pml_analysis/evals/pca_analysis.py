"""
Principal component analysis of the standardized predictors.

The predictors are centered and scaled before PCA, and the number of
components is the smallest one whose cumulative explained variance reaches
the configured fraction.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.decomposition import PCA
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

logger = logging.getLogger(__name__)


@dataclass
class PcaSummary:
    """Result of fitting PCA on a predictor matrix."""
    n_components: int
    explained_variance_ratio: np.ndarray
    cumulative_variance: np.ndarray
    scores: pd.DataFrame  # one row per observation, columns PC1..PCn

    @property
    def component_names(self) -> List[str]:
        return list(self.scores.columns)


def fit_pca(X: pd.DataFrame, variance: float = 0.95, random_seed: int = 42) -> PcaSummary:
    """Standardize `X` and keep enough components to explain `variance`."""
    pipeline = Pipeline([
        ('scale', StandardScaler()),
        ('pca', PCA(n_components=variance, svd_solver='full', random_state=random_seed)),
    ])
    scores = pipeline.fit_transform(X)
    pca = pipeline.named_steps['pca']

    names = [f'PC{i + 1}' for i in range(pca.n_components_)]
    summary = PcaSummary(
        n_components=int(pca.n_components_),
        explained_variance_ratio=pca.explained_variance_ratio_,
        cumulative_variance=np.cumsum(pca.explained_variance_ratio_),
        scores=pd.DataFrame(scores, index=X.index, columns=names),
    )
    logger.info(
        f"PCA keeps {summary.n_components} of {X.shape[1]} components "
        f"({summary.cumulative_variance[-1]:.3f} of variance)"
    )
    return summary


def plot_pca_scatter(summary: PcaSummary, labels: pd.Series, output_path: Path,
                     title: str = 'First two principal components'):
    """Scatter of PC1 against PC2 colored by class."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    plot_df = summary.scores.copy()
    if 'PC2' not in plot_df.columns:
        plot_df['PC2'] = 0.0
    plot_df['classe'] = np.asarray(labels)

    fig, ax = plt.subplots(figsize=(10, 8))
    sns.scatterplot(
        data=plot_df,
        x='PC1',
        y='PC2',
        hue='classe',
        palette='tab10',
        s=8,
        alpha=0.5,
        linewidth=0,
        ax=ax,
    )
    ratio = summary.explained_variance_ratio
    ax.set_xlabel(f'PC1 ({ratio[0]:.1%} variance)')
    if len(ratio) > 1:
        ax.set_ylabel(f'PC2 ({ratio[1]:.1%} variance)')
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.legend(title='Class', markerscale=3)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"PCA scatter saved: {output_path}")
    return output_path


def plot_pca_boxplots(summary: PcaSummary, labels: pd.Series, output_path: Path,
                      n_components: Optional[int] = 4):
    """Box plots of the leading components, one panel per component, grouped by class."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    names = summary.component_names[:n_components]
    long_df = (summary.scores[names]
               .assign(classe=np.asarray(labels))
               .melt(id_vars='classe', var_name='component', value_name='score'))

    fig, axes = plt.subplots(1, len(names), figsize=(4 * len(names), 5), squeeze=False)
    for ax, name in zip(axes[0], names):
        sns.boxplot(
            data=long_df[long_df['component'] == name],
            x='classe',
            y='score',
            hue='classe',
            palette='tab10',
            legend=False,
            fliersize=1,
            ax=ax,
        )
        ax.set_title(name)
        ax.set_xlabel('Class')
        ax.set_ylabel('Score')
    fig.suptitle('Principal component scores by class', fontsize=14, fontweight='bold')
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"PCA box plots saved: {output_path}")
    return output_path
