"""
End-to-end analysis pipeline.

Stages run strictly in order, each taking the previous stage's output as an
argument:

    fetch -> parse -> clean -> prepare -> explore -> model -> evaluate -> predict -> write

Any failure inside a stage is re-raised as StageError carrying the stage
name; nothing is retried and no partial results are written.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from tqdm import tqdm

from .data.data_config import AnalysisConfig
from .data.data_load_clean import clean_table, describe_cleaning, fetch_text, parse_table
from .data.datasets import get_dataset_config
from .data.features import build_matrix, check_column_sets, select_predictors, split_training
from .errors import StageError
from .evals.confusion import EvaluationResult, evaluate, plot_confusion_matrix, select_best
from .evals.correlation import correlation_matrix, plot_correlation_heatmap, rank_correlated_pairs
from .evals.pca_analysis import PcaSummary, fit_pca, plot_pca_boxplots, plot_pca_scatter
from .evals.report import confusion_tables, write_report
from .evals.tree_plot import plot_decision_tree
from .exporters import save_metrics, write_prediction_files
from .models.classifiers import FittedModel, ModelType, fit_with_cv
from .models.model_cache import ModelCache

logger = logging.getLogger(__name__)


@dataclass
class LoadedData:
    """Cleaned training and evaluation tables."""
    train_df: pd.DataFrame
    test_df: pd.DataFrame
    train_summary: Dict
    test_summary: Dict


@dataclass
class PreparedData:
    """Predictor matrices for the training, validation and evaluation rows."""
    predictors: List[str]
    labels: List[str]
    X_train: pd.DataFrame
    y_train: pd.Series
    X_val: pd.DataFrame
    y_val: pd.Series
    X_test: pd.DataFrame


@dataclass
class ExplorationResult:
    """Correlation ranking and PCA of the training predictors."""
    correlation: pd.DataFrame
    top_pairs: pd.DataFrame
    pca: PcaSummary
    heatmap_path: Optional[Path] = None
    scatter_path: Optional[Path] = None
    boxplot_path: Optional[Path] = None


@dataclass
class AnalysisResult:
    """Everything an analysis run produced."""
    loaded: LoadedData
    prepared: PreparedData
    exploration: ExplorationResult
    models: Dict[str, FittedModel]
    evaluations: List[EvaluationResult]
    best_model: str
    predictions: pd.Series
    missing_threshold: float
    confusion_paths: Dict[str, Path] = field(default_factory=dict)
    tree_plot_path: Optional[Path] = None
    prediction_paths: List[Path] = field(default_factory=list)
    report_path: Optional[Path] = None


@contextmanager
def stage(name: str):
    """Run a block as a named stage; failures become StageError(name, cause)."""
    logger.info("=" * 80)
    logger.info(f"STAGE: {name}")
    logger.info("=" * 80)
    try:
        yield
    except StageError:
        raise
    except Exception as e:
        raise StageError(name, e) from e


class AnalysisPipeline:
    """Load, explore, model and predict the Weight Lifting Exercise data."""

    def __init__(self, config: AnalysisConfig):
        config.validate()
        self.config = config
        self.output_dir = Path(config.output_dir)
        self.plots_dir = self.output_dir / 'plots'
        self.cache = ModelCache(config.modeling.cache_dir)

        dataset_config = get_dataset_config(config.dataset)
        self.dataset_title = dataset_config.display_name
        self.train_source = config.train_source or dataset_config.train_url
        self.test_source = config.test_source or dataset_config.test_url

    def load(self, train_source: str, test_source: str) -> LoadedData:
        """Fetch, parse and clean both tables."""
        loader_config = self.config.loader

        with stage('fetch'):
            train_text = fetch_text(train_source, timeout=loader_config.request_timeout)
            test_text = fetch_text(test_source, timeout=loader_config.request_timeout)

        with stage('parse'):
            train_raw = parse_table(train_text, train_source, loader_config)
            test_raw = parse_table(test_text, test_source, loader_config)

        with stage('clean'):
            train_df = clean_table(train_raw, train_source, loader_config)
            test_df = clean_table(test_raw, test_source, loader_config)
            check_column_sets(train_df, test_df, loader_config.label_column)
            loaded = LoadedData(
                train_df=train_df,
                test_df=test_df,
                train_summary=describe_cleaning(train_raw, train_df, loader_config),
                test_summary=describe_cleaning(test_raw, test_df, loader_config),
            )
            logger.info(f"Cleaned training table: {train_df.shape}, evaluation table: {test_df.shape}")
        return loaded

    def prepare(self, loaded: LoadedData) -> PreparedData:
        """Select predictors and split the labeled rows into training and validation parts."""
        label = self.config.loader.label_column
        with stage('prepare'):
            predictors = select_predictors(loaded.train_df, label)
            training, validation = split_training(
                loaded.train_df,
                label_column=label,
                validation_size=self.config.split.validation_size,
                random_seed=self.config.split.random_seed,
            )
            prepared = PreparedData(
                predictors=predictors,
                labels=[str(level) for level in self.config.loader.label_levels],
                X_train=build_matrix(training, predictors),
                y_train=training[label].astype(str),
                X_val=build_matrix(validation, predictors),
                y_val=validation[label].astype(str),
                X_test=build_matrix(loaded.test_df, predictors),
            )
        return prepared

    def explore(self, prepared: PreparedData) -> ExplorationResult:
        """Correlation ranking and PCA plots of the training part."""
        explore_config = self.config.explore
        with stage('explore'):
            corr = correlation_matrix(prepared.X_train)
            top_pairs = rank_correlated_pairs(
                corr, cutoff=explore_config.correlation_cutoff, top_n=explore_config.top_pairs
            )
            pca = fit_pca(prepared.X_train, variance=explore_config.pca_variance,
                          random_seed=self.config.split.random_seed)
            exploration = ExplorationResult(
                correlation=corr,
                top_pairs=top_pairs,
                pca=pca,
                heatmap_path=plot_correlation_heatmap(corr, self.plots_dir / 'correlation_heatmap.png'),
                scatter_path=plot_pca_scatter(pca, prepared.y_train, self.plots_dir / 'pca_scatter.png'),
                boxplot_path=plot_pca_boxplots(
                    pca, prepared.y_train, self.plots_dir / 'pca_boxplots.png',
                    n_components=explore_config.pca_boxplot_components,
                ),
            )
        return exploration

    def model(self, prepared: PreparedData) -> Dict[str, FittedModel]:
        """Fit (or load from cache) every enabled model type."""
        model_config = self.config.modeling
        models = {}
        with stage('model'):
            for name in tqdm(model_config.models, desc='Models'):
                model_type = ModelType(name)
                models[name] = self.cache.load_or_fit(
                    model_type,
                    lambda: fit_with_cv(
                        model_type, prepared.X_train, prepared.y_train,
                        model_config, random_seed=self.config.split.random_seed,
                    ),
                    refit=model_config.refit,
                    feature_names=prepared.predictors,
                )
        return models

    def evaluate(self, models: Dict[str, FittedModel], prepared: PreparedData):
        """Validation confusion matrices for each model; returns (evaluations, plot paths, tree plot)."""
        evaluations = []
        confusion_paths = {}
        tree_plot_path = None
        with stage('evaluate'):
            for name, fitted in models.items():
                result = evaluate(name, prepared.y_val, fitted.predict(prepared.X_val), prepared.labels)
                evaluations.append(result)
                confusion_paths[name] = plot_confusion_matrix(
                    result, self.plots_dir / f'confusion_{name}.png'
                )
            if ModelType.DECISION_TREE.value in models:
                tree = models[ModelType.DECISION_TREE.value].estimator
                tree_plot_path = plot_decision_tree(
                    tree,
                    feature_names=prepared.predictors,
                    class_names=list(tree.classes_),
                    output_path=self.plots_dir / 'decision_tree.png',
                    max_depth=self.config.modeling.tree_plot_depth,
                )
        return evaluations, confusion_paths, tree_plot_path

    def predict(self, fitted: FittedModel, prepared: PreparedData) -> pd.Series:
        """Predicted class of every evaluation row, in table order."""
        with stage('predict'):
            predictions = pd.Series(
                fitted.predict(prepared.X_test),
                index=prepared.X_test.index,
                name='prediction',
            )
        return predictions

    def write(self, result: AnalysisResult) -> AnalysisResult:
        """Prediction files, metrics JSON and the Markdown report."""
        with stage('write'):
            result.prediction_paths = write_prediction_files(
                result.predictions, self.config.predictions_dir, count=self.config.num_predictions
            )
            save_metrics({
                'best_model': result.best_model,
                'predictors': result.prepared.predictors,
                'cv_accuracy': {name: m.cv_accuracy for name, m in result.models.items()},
                'validation_accuracy': {e.name: e.accuracy for e in result.evaluations},
                'confusion_matrices': confusion_tables(result.evaluations),
                'pca_components': result.exploration.pca.n_components,
                'predictions': result.predictions.tolist(),
            }, self.output_dir / 'metrics.json')
            result.report_path = write_report(result, self.output_dir / 'REPORT.md', self.dataset_title)
        return result

    def run(self) -> AnalysisResult:
        """Run every stage in order."""
        logger.info(f"Training source: {self.train_source}")
        logger.info(f"Evaluation source: {self.test_source}")

        loaded = self.load(self.train_source, self.test_source)
        prepared = self.prepare(loaded)
        exploration = self.explore(prepared)
        models = self.model(prepared)
        evaluations, confusion_paths, tree_plot_path = self.evaluate(models, prepared)
        best_model = select_best(evaluations).name
        logger.info(f"Best model on validation rows: {best_model}")
        predictions = self.predict(models[best_model], prepared)

        result = AnalysisResult(
            loaded=loaded,
            prepared=prepared,
            exploration=exploration,
            models=models,
            evaluations=evaluations,
            best_model=best_model,
            predictions=predictions,
            missing_threshold=self.config.loader.missing_threshold,
            confusion_paths=confusion_paths,
            tree_plot_path=tree_plot_path,
        )
        return self.write(result)
