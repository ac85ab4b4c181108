"""
Abstract classifier interface for mlcv.

The evaluation harness only ever talks to a classifier through ``train`` and
``predict``. The trained model is an opaque object owned by whoever called
``train``; the classifier itself keeps no per-fold state.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import numpy as np

from ..data.dataset import Dataset, Instance
from ..utils.logging import LoggingMixin


# Fixed learning rate for backpropagation training.
LEARNING_RATE = 0.05

EPOCHS = 1000

DEFAULT_REGULARIZATION_WEIGHT = 1e-5

# Hidden layer width as a fraction of the feature count when not given.
HIDDEN_UNITS_RATIO = 0.2


class Hyperparameters:
    """
    Training hyperparameters for a single-hidden-layer network.
    
    ``hidden_units`` and ``regularization_weight`` may be left as None, in
    which case ``resolve`` fills in the defaults for a given dataset.
    """
    
    def __init__(
        self,
        hidden_units: Optional[int] = None,
        regularization_weight: Optional[float] = None,
        learning_rate: float = LEARNING_RATE,
        epochs: int = EPOCHS
    ) -> None:
        if hidden_units is not None and hidden_units < 1:
            raise ValueError(f"hidden_units must be positive, got {hidden_units}")
        if regularization_weight is not None and regularization_weight < 0:
            raise ValueError(
                f"regularization_weight must be non-negative, got {regularization_weight}"
            )
        if epochs < 1:
            raise ValueError(f"epochs must be positive, got {epochs}")
        
        self.hidden_units = hidden_units
        self.regularization_weight = regularization_weight
        self.learning_rate = learning_rate
        self.epochs = epochs
    
    def resolve(self, n_features: int) -> 'Hyperparameters':
        """Return a copy with every optional field set to its default."""
        hidden_units = self.hidden_units
        if hidden_units is None:
            hidden_units = max(1, int(round(HIDDEN_UNITS_RATIO * n_features)))
        
        regularization_weight = self.regularization_weight
        if regularization_weight is None:
            regularization_weight = DEFAULT_REGULARIZATION_WEIGHT
        
        return Hyperparameters(
            hidden_units=hidden_units,
            regularization_weight=regularization_weight,
            learning_rate=self.learning_rate,
            epochs=self.epochs
        )
    
    def with_regularization(self, regularization_weight: float) -> 'Hyperparameters':
        return Hyperparameters(
            hidden_units=self.hidden_units,
            regularization_weight=regularization_weight,
            learning_rate=self.learning_rate,
            epochs=self.epochs
        )
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'hidden_units': self.hidden_units,
            'regularization_weight': self.regularization_weight,
            'learning_rate': self.learning_rate,
            'epochs': self.epochs
        }
    
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Hyperparameters):
            return NotImplemented
        return self.to_dict() == other.to_dict()
    
    def __repr__(self) -> str:
        params = ", ".join(f"{key}={value}" for key, value in self.to_dict().items())
        return f"Hyperparameters({params})"


class BaseClassifier(ABC, LoggingMixin):
    """
    Abstract base class for multi-label classifiers.
    
    Implementations wrap a learning library. ``train`` must accept partially
    specified hyperparameters and use defaults for the missing fields;
    ``predict`` must return one confidence in [0, 1] per label.
    """
    
    @abstractmethod
    def train(self, dataset: Dataset, hyperparameters: Optional[Hyperparameters] = None) -> Any:
        """
        Train a new model on the dataset.
        
        Args:
            dataset: Training data
            hyperparameters: Training hyperparameters (None for all defaults)
            
        Returns:
            Trained model object
        """
        pass
    
    @abstractmethod
    def predict(self, model: Any, instance: Instance) -> np.ndarray:
        """
        Predict per-label confidences for one instance.
        
        Args:
            model: Model returned by ``train``
            instance: Instance to score
            
        Returns:
            Array of shape (n_labels,) with confidences in [0, 1]
        """
        pass
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
