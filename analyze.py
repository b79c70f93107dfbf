#!/usr/bin/env python3
"""
Run the Weight Lifting Exercise analysis.

This script runs the whole batch:
1. Download and clean the training and evaluation tables
2. Split the labeled rows into training and validation parts
3. Explore correlations and principal components
4. Fit (or load cached) decision tree, gradient boosting and random forest models
5. Evaluate them on the validation rows and predict the evaluation rows
6. Write prediction files, metrics and a Markdown report

Usage:
  # Run with the default configuration
  python analyze.py --config configs/analysis/default.yaml

  # Use local copies of the tables
  python analyze.py --config configs/analysis/default.yaml \
      --train-source data/pml-training.csv --test-source data/pml-testing.csv

  # Ignore cached models and fit only the random forest
  python analyze.py --config configs/analysis/default.yaml --refit --models random_forest
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

from pml_analysis.data.data_config import AnalysisConfig, MODEL_TYPES
from pml_analysis.errors import StageError
from pml_analysis.pipeline import AnalysisPipeline


def setup_logging(log_dir: str = 'logs') -> logging.Logger:
    """Log to the console and to a timestamped file."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_file = log_dir / f'analysis_{timestamp}.log'

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
    logger = logging.getLogger(__name__)
    logger.info(f"Logging to: {log_file}")
    return logger


def build_config(args) -> AnalysisConfig:
    """Load the YAML config and apply command-line overrides."""
    config = AnalysisConfig.from_yaml(args.config) if args.config else AnalysisConfig()

    if args.train_source:
        config.train_source = args.train_source
    if args.test_source:
        config.test_source = args.test_source
    if args.output_dir:
        config.output_dir = args.output_dir
        config.predictions_dir = str(Path(args.output_dir) / 'predictions')
    if args.refit:
        config.modeling.refit = True
    if args.models:
        config.modeling.models = args.models

    config.validate()
    return config


def main():
    parser = argparse.ArgumentParser(description="Weight Lifting Exercise analysis")
    parser.add_argument('--config', type=str, default='configs/analysis/default.yaml',
                        help='Path to analysis config YAML')
    parser.add_argument('--train-source', type=str, default=None,
                        help='URL or path of the training table (overrides config)')
    parser.add_argument('--test-source', type=str, default=None,
                        help='URL or path of the evaluation table (overrides config)')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Directory for plots, metrics, report and predictions')
    parser.add_argument('--refit', action='store_true',
                        help='Fit models even when a cached model exists')
    parser.add_argument('--models', nargs='+', choices=MODEL_TYPES, default=None,
                        help='Model types to fit')
    parser.add_argument('--log-dir', type=str, default='logs',
                        help='Directory for log files')
    args = parser.parse_args()

    logger = setup_logging(args.log_dir)

    try:
        config = build_config(args)
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Analysis failed at stage 'config': {e}")
        return 1

    try:
        result = AnalysisPipeline(config).run()
    except StageError as e:
        logger.error(str(e))
        return 1

    logger.info("=" * 80)
    logger.info("ANALYSIS COMPLETE")
    logger.info("=" * 80)
    logger.info(f"Best model: {result.best_model}")
    logger.info(f"Report: {result.report_path}")
    logger.info(f"Predictions: {config.predictions_dir}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
