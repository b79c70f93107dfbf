"""Markdown report combining the tables and plots of an analysis run."""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)


def _markdown_table(df: pd.DataFrame, index: bool = False, float_format: str = '{:.4f}') -> str:
    if index:
        df = df.reset_index()
    if df.empty:
        return "_No rows._\n"

    def fmt(value):
        if isinstance(value, float):
            return float_format.format(value) if pd.notna(value) else "N/A"
        return str(value)

    lines = [
        "| " + " | ".join(str(c) for c in df.columns) + " |",
        "| " + " | ".join(["---"] * len(df.columns)) + " |",
    ]
    for _, row in df.iterrows():
        lines.append("| " + " | ".join(fmt(v) for v in row.values) + " |")
    return "\n".join(lines) + "\n"


def _image(path: Optional[Path], report_dir: Path, alt: str) -> str:
    if path is None:
        return ""
    rel = os.path.relpath(Path(path), report_dir)
    return f"![{alt}]({Path(rel).as_posix()})\n\n"


def write_report(result, output_path: Path, dataset_title: str = 'Weight Lifting Exercises') -> Path:
    """
    Write the run report.

    Args:
        result: AnalysisResult produced by AnalysisPipeline.run()
        output_path: Markdown file to write
        dataset_title: Heading used for the document
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    report_dir = output_path.parent

    loaded = result.loaded
    prepared = result.prepared
    exploration = result.exploration

    with open(output_path, 'w') as f:
        f.write(f"# {dataset_title}: exercise quality prediction\n\n")
        f.write(f"_Generated {datetime.now().strftime('%Y-%m-%d %H:%M')}_\n\n")

        # Data
        f.write("## Data\n\n")
        for name, summary in (('Training', loaded.train_summary), ('Evaluation', loaded.test_summary)):
            f.write(
                f"- **{name}**: raw {summary['raw_shape'][0]} x {summary['raw_shape'][1]}, "
                f"cleaned {summary['clean_shape'][0]} x {summary['clean_shape'][1]}, "
                f"{len(summary['dropped_sparse_columns'])} sparse columns dropped\n"
            )
        f.write(
            f"\nColumns with at least {result.missing_threshold:.0%} missing values were removed. "
            f"{len(prepared.predictors)} numeric predictors remain; the training table is split into "
            f"{len(prepared.X_train)} training and {len(prepared.X_val)} validation rows.\n\n"
        )
        class_counts = prepared.y_train.value_counts().sort_index().rename_axis('classe').reset_index(name='rows')
        f.write("### Class distribution (training part)\n\n")
        f.write(_markdown_table(class_counts))
        f.write("\n")

        # Exploration
        f.write("## Exploration\n\n")
        f.write("### Most correlated predictor pairs\n\n")
        f.write(_markdown_table(exploration.top_pairs))
        f.write("\n")
        f.write(_image(exploration.heatmap_path, report_dir, 'Correlation heatmap'))

        pca = exploration.pca
        f.write("### Principal components\n\n")
        f.write(
            f"{pca.n_components} components of the standardized predictors explain "
            f"{pca.cumulative_variance[-1]:.1%} of the variance.\n\n"
        )
        variance_df = pd.DataFrame({
            'component': pca.component_names,
            'explained': pca.explained_variance_ratio,
            'cumulative': pca.cumulative_variance,
        }).head(10)
        f.write(_markdown_table(variance_df))
        f.write("\n")
        f.write(_image(exploration.scatter_path, report_dir, 'PCA scatter'))
        f.write(_image(exploration.boxplot_path, report_dir, 'PCA box plots'))

        # Models
        f.write("## Models\n\n")
        rows = []
        for evaluation in result.evaluations:
            fitted = result.models[evaluation.name]
            rows.append({
                'model': fitted.model_type.display_name,
                'cv_accuracy': fitted.cv_accuracy,
                'validation_accuracy': evaluation.accuracy,
                'out_of_sample_error': evaluation.out_of_sample_error,
                'best_params': str(fitted.best_params),
            })
        f.write(_markdown_table(pd.DataFrame(rows)))
        f.write("\n")
        f.write(_image(result.tree_plot_path, report_dir, 'Decision tree'))

        for evaluation in result.evaluations:
            title = result.models[evaluation.name].model_type.display_name
            f.write(f"### {title}: validation confusion matrix\n\n")
            f.write(_markdown_table(evaluation.confusion, index=True))
            f.write("\n")
            f.write(_image(result.confusion_paths.get(evaluation.name), report_dir, f'{title} confusion matrix'))

        # Predictions
        best = result.models[result.best_model]
        f.write("## Predictions\n\n")
        f.write(
            f"The {best.model_type.display_name} model has the highest validation accuracy "
            f"and predicts the evaluation rows:\n\n"
        )
        predictions_df = result.predictions.rename('prediction').reset_index()
        f.write(_markdown_table(predictions_df))

    logger.info(f"Report written to {output_path}")
    return output_path


def confusion_tables(evaluations) -> Dict[str, List[List[int]]]:
    """Confusion matrices as nested lists keyed by model name."""
    return {e.name: e.confusion.values.tolist() for e in evaluations}
