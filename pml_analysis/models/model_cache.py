"""On-disk cache of fitted models, one joblib file per model type."""

import logging
from pathlib import Path
from typing import Callable, List, Optional

import joblib

from .classifiers import FittedModel, ModelType

logger = logging.getLogger(__name__)


class ModelCache:
    """Read-if-present / write-if-absent store for fitted models."""

    def __init__(self, cache_dir: str = 'trained_models'):
        self.cache_dir = Path(cache_dir)

    def path_for(self, model_type: ModelType) -> Path:
        return self.cache_dir / f'{model_type.value}.joblib'

    def load(self, model_type: ModelType) -> Optional[FittedModel]:
        """Return the last saved model of this type, or None."""
        path = self.path_for(model_type)
        if not path.exists():
            return None
        fitted = joblib.load(path)
        if not isinstance(fitted, FittedModel) or fitted.model_type != model_type:
            raise TypeError(f"Cached file {path} does not hold a {model_type.value} model")
        logger.info(f"Loaded cached {model_type.display_name} from {path}")
        return fitted

    @staticmethod
    def _same_features(fitted: FittedModel, feature_names: Optional[List[str]]) -> bool:
        if feature_names is None:
            return True
        trained_on = getattr(fitted.estimator, 'feature_names_in_', None)
        return trained_on is not None and list(trained_on) == list(feature_names)

    def save(self, fitted: FittedModel) -> Path:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(fitted.model_type)
        joblib.dump(fitted, path)
        logger.info(f"Saved {fitted.model_type.display_name} to {path}")
        return path

    def load_or_fit(
        self,
        model_type: ModelType,
        fit_fn: Callable[[], FittedModel],
        refit: bool = False,
        feature_names: Optional[List[str]] = None
    ) -> FittedModel:
        """Load the cached model, or fit it with `fit_fn` and save it.

        A cached model trained on other predictors than `feature_names` is
        fitted again.
        """
        if not refit:
            cached = self.load(model_type)
            if cached is not None and self._same_features(cached, feature_names):
                return cached
            if cached is not None:
                logger.warning(
                    f"Cached {model_type.display_name} was trained on other predictors; refitting"
                )
        fitted = fit_fn()
        self.save(fitted)
        return fitted
