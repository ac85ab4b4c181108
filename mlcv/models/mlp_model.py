"""
Feed-forward neural network classifier for mlcv.

Wraps sklearn.neural_network.MLPClassifier with the BaseClassifier
interface. One hidden layer, trained by stochastic gradient descent with an
L2 penalty given by the regularization weight.
"""

from typing import Optional, Union
import warnings

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPClassifier

from ..data.dataset import Dataset, Instance
from .base_model import BaseClassifier, Hyperparameters


class MLPClassifierAdapter(BaseClassifier):
    """
    Multi-label MLP classifier backed by scikit-learn.
    
    Each call to ``train`` builds a fresh MLPClassifier, so models are never
    shared between folds.
    """
    
    def __init__(
        self,
        random_state: int = 42,
        activation: str = 'tanh',
        solver: str = 'sgd',
        momentum: float = 0.0,
        batch_size: Union[int, str] = 'auto',
        tol: float = 1e-4,
        n_iter_no_change: int = 10
    ) -> None:
        """
        Initialize MLP adapter.
        
        Args:
            random_state: Random seed for weight initialization and batching
            activation: Hidden layer activation
            solver: Weight optimization solver
            momentum: SGD momentum
            batch_size: Minibatch size ('auto' caps it at the training set size)
            tol: Loss improvement tolerance for stopping before max epochs
            n_iter_no_change: Epochs without improvement before stopping
        """
        self.random_state = random_state
        self.activation = activation
        self.solver = solver
        self.momentum = momentum
        self.batch_size = batch_size
        self.tol = tol
        self.n_iter_no_change = n_iter_no_change
    
    def _create_model(self, hyperparameters: Hyperparameters) -> MLPClassifier:
        return MLPClassifier(
            hidden_layer_sizes=(hyperparameters.hidden_units,),
            activation=self.activation,
            solver=self.solver,
            alpha=hyperparameters.regularization_weight,
            learning_rate='constant',
            learning_rate_init=hyperparameters.learning_rate,
            max_iter=hyperparameters.epochs,
            momentum=self.momentum,
            batch_size=self.batch_size,
            tol=self.tol,
            n_iter_no_change=self.n_iter_no_change,
            random_state=self.random_state
        )
    
    def train(self, dataset: Dataset, hyperparameters: Optional[Hyperparameters] = None) -> MLPClassifier:
        """
        Train an MLP on the dataset.
        
        Args:
            dataset: Training data
            hyperparameters: Hyperparameters; missing fields take defaults
            
        Returns:
            Fitted MLPClassifier
        """
        if hyperparameters is None:
            hyperparameters = Hyperparameters()
        resolved = hyperparameters.resolve(dataset.n_features)
        
        self.log_debug(
            f"Training MLP on {dataset.n_instances} instances: "
            f"hidden_units={resolved.hidden_units}, "
            f"regularization_weight={resolved.regularization_weight}"
        )
        
        model = self._create_model(resolved)
        
        # A single label column is a plain binary target for scikit-learn.
        y = dataset.labels
        if dataset.n_labels == 1:
            y = y.ravel()
        
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            model.fit(dataset.features, y)
        
        return model
    
    def predict(self, model: MLPClassifier, instance: Instance) -> np.ndarray:
        """Predict label confidences for one instance."""
        features = np.asarray(instance.features, dtype=float).reshape(1, -1)
        confidences = model.predict_proba(features)[0]

        if len(instance.labels) == 1:
            return self._positive_confidence(model, confidences)

        return np.asarray(confidences, dtype=float)

    @staticmethod
    def _positive_confidence(model: MLPClassifier, confidences: np.ndarray) -> np.ndarray:
        """Confidence of class 1 for a single-label model."""
        classes = list(model.classes_)

        # Training fold held one class only: the network output is meaningless.
        if len(classes) == 1:
            return np.array([1.0 if classes[0] == 1 else 0.0])

        return np.array([confidences[classes.index(1)]], dtype=float)
    
    def __repr__(self) -> str:
        return (
            f"MLPClassifierAdapter(activation={self.activation!r}, "
            f"solver={self.solver!r}, random_state={self.random_state})"
        )
