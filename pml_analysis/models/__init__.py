from .classifiers import ModelType, FittedModel, build_estimator, fit_with_cv
from .model_cache import ModelCache

__all__ = ['ModelType', 'FittedModel', 'build_estimator', 'fit_with_cv', 'ModelCache']
