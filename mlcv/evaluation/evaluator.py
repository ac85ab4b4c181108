"""
Held-out fold evaluation.
"""

import logging
from typing import Any, Optional

import numpy as np

from ..data.dataset import Dataset
from ..errors import DimensionMismatchError
from ..models.base_model import BaseClassifier
from ..utils.logging import LoggingMixin
from .predictions import PredictionResults


class Evaluator(LoggingMixin):
    """Scores a trained model on every instance of a test fold."""
    
    def __init__(self, classifier: BaseClassifier, logger: Optional[logging.Logger] = None) -> None:
        self.classifier = classifier
        self.logger = logger
    
    def evaluate(self, model: Any, test_fold: Dataset) -> PredictionResults:
        """
        Predict every instance of the fold, keeping fold order.
        
        Row i of the result holds the model's confidences and the true labels
        of the fold's i-th instance.
        
        Raises:
            DimensionMismatchError: If the model returns the wrong number of confidences
        """
        n = test_fold.n_instances
        k = test_fold.n_labels
        predictions = np.empty((n, k))
        
        for i, instance in enumerate(test_fold):
            confidences = np.asarray(self.classifier.predict(model, instance), dtype=float).ravel()
            if confidences.shape[0] != k:
                raise DimensionMismatchError(
                    f"Model returned {confidences.shape[0]} confidences for "
                    f"instance {i}, expected {k}"
                )
            predictions[i] = confidences
        
        self.log_debug(f"Evaluated {n} instances")
        
        return PredictionResults(predictions, test_fold.labels)
