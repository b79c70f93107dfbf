"""Output files: per-observation predictions and run metrics."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def prediction_file_name(position: int) -> str:
    """File name for the 1-based evaluation row `position`."""
    return f'problem_id_{position}.txt'


def write_prediction_files(predictions: Sequence, output_dir: str, count: int = 20) -> List[Path]:
    """
    Write one file per evaluation row holding only its predicted class.

    Files are named `problem_id_<i>.txt` with i starting at 1; the content
    is the bare label with no header, quoting or trailing newline.
    """
    predictions = list(predictions)
    if len(predictions) < count:
        raise ValueError(f"Expected at least {count} predictions, got {len(predictions)}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for position, label in enumerate(predictions[:count], start=1):
        path = output_dir / prediction_file_name(position)
        path.write_text(str(label), encoding='utf-8')
        paths.append(path)

    logger.info(f"Wrote {len(paths)} prediction files to {output_dir}")
    return paths


def save_metrics(metrics: Dict[str, Any], file_path: str) -> Path:
    """Save run metrics to a JSON file, converting numpy values."""
    def to_serializable(value):
        if isinstance(value, dict):
            return {str(k): to_serializable(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [to_serializable(v) for v in value]
        if isinstance(value, np.ndarray):
            return value.tolist()
        if isinstance(value, np.generic):
            return value.item()
        return value

    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w') as f:
        json.dump(to_serializable(metrics), f, indent=2, default=str)

    logger.info(f"Metrics saved to {file_path}")
    return file_path
