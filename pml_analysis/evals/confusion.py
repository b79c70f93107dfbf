"""Confusion matrices and accuracy on held-out rows."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.metrics import accuracy_score, classification_report, confusion_matrix

logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
    """Held-out performance of one model."""
    name: str
    accuracy: float
    confusion: pd.DataFrame  # rows: actual class, columns: predicted class
    report: Dict[str, Dict[str, float]]

    @property
    def out_of_sample_error(self) -> float:
        return 1.0 - self.accuracy


def evaluate(name: str, y_true: Sequence, y_pred: Sequence, labels: List[str]) -> EvaluationResult:
    """Compare predictions with the actual classes."""
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)

    cm = confusion_matrix(y_true, y_pred, labels=labels)
    confusion = pd.DataFrame(
        cm,
        index=pd.Index(labels, name='actual'),
        columns=pd.Index(labels, name='predicted'),
    )
    result = EvaluationResult(
        name=name,
        accuracy=float(accuracy_score(y_true, y_pred)),
        confusion=confusion,
        report=classification_report(y_true, y_pred, labels=labels, output_dict=True, zero_division=0),
    )
    logger.info(
        f"{name}: validation accuracy {result.accuracy:.4f}, "
        f"out-of-sample error {result.out_of_sample_error:.4f}"
    )
    return result


def select_best(results: List[EvaluationResult]) -> EvaluationResult:
    """Highest accuracy; the earlier model wins ties."""
    if not results:
        raise ValueError("No evaluation results to choose from")
    best = results[0]
    for result in results[1:]:
        if result.accuracy > best.accuracy:
            best = result
    return best


def plot_confusion_matrix(result: EvaluationResult, output_path: Path, colormap: str = 'Blues'):
    """Row-normalized confusion matrix heatmap annotated with raw counts."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    counts = result.confusion
    row_sums = counts.sum(axis=1).replace(0, np.nan)
    normalized = counts.div(row_sums, axis=0).fillna(0.0)

    fig, ax = plt.subplots(figsize=(7, 6))
    sns.heatmap(
        normalized,
        annot=counts.values,
        fmt='d',
        cmap=colormap,
        vmin=0,
        vmax=1,
        cbar_kws={'label': 'Fraction of actual class'},
        ax=ax,
    )
    ax.set_xlabel('Predicted Label')
    ax.set_ylabel('True Label')
    ax.set_title(f'{result.name} (accuracy {result.accuracy:.3f})', fontsize=13, fontweight='bold')
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"Confusion matrix saved: {output_path}")
    return output_path
