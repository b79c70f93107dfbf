"""Pairwise predictor correlations: ranking table and heatmap."""

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

logger = logging.getLogger(__name__)


def correlation_matrix(X: pd.DataFrame) -> pd.DataFrame:
    """Pearson correlation between predictors."""
    return X.corr(method='pearson')


def rank_correlated_pairs(corr: pd.DataFrame, cutoff: float = 0.8, top_n: int = 20) -> pd.DataFrame:
    """
    Rank distinct predictor pairs by absolute correlation.

    Only pairs with |r| >= cutoff are returned, strongest first.

    Returns:
        DataFrame with columns: feature_a, feature_b, correlation, abs_correlation
    """
    # Upper triangle without the diagonal gives each pair once
    upper = np.triu(np.ones(corr.shape, dtype=bool), k=1)
    pairs = corr.where(upper).stack().dropna().reset_index()
    pairs.columns = ['feature_a', 'feature_b', 'correlation']
    pairs['abs_correlation'] = pairs['correlation'].abs()
    pairs = (pairs[pairs['abs_correlation'] >= cutoff]
             .sort_values(['abs_correlation', 'feature_a', 'feature_b'],
                          ascending=[False, True, True])
             .head(top_n)
             .reset_index(drop=True))
    logger.info(f"{len(pairs)} predictor pairs with |r| >= {cutoff}")
    return pairs


def plot_correlation_heatmap(corr: pd.DataFrame, output_path: Path, title: str = 'Predictor correlations'):
    """Save a heatmap of the correlation matrix."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    size = max(8, 0.22 * len(corr))
    fig, ax = plt.subplots(figsize=(size, size * 0.85))
    sns.heatmap(
        corr,
        cmap='RdBu_r',
        vmin=-1,
        vmax=1,
        center=0,
        square=True,
        xticklabels=True,
        yticklabels=True,
        cbar_kws={'shrink': 0.6, 'label': 'Pearson r'},
        ax=ax,
    )
    ax.tick_params(axis='both', labelsize=6)
    ax.set_title(title, fontsize=14, fontweight='bold')
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"Correlation heatmap saved: {output_path}")
    return output_path
