"""
Shared fixtures and stub classifiers for the mlcv test suite.

The stubs implement BaseClassifier without any learning so the harness can
be tested in isolation from the neural network.
"""

import numpy as np
import pytest

from mlcv.data.dataset import Dataset
from mlcv.models.base_model import BaseClassifier


class TruthClassifier(BaseClassifier):
    """Predicts each instance's own ground truth."""
    
    def __init__(self):
        self.trained = []
    
    def train(self, dataset, hyperparameters=None):
        model = object()
        self.trained.append((model, dataset, hyperparameters))
        return model
    
    def predict(self, model, instance):
        return np.array(instance.labels, dtype=float)


class ConstantClassifier(BaseClassifier):
    """Predicts the same confidence for every label."""
    
    def __init__(self, value=0.5):
        self.value = value
    
    def train(self, dataset, hyperparameters=None):
        return {'n_labels': dataset.n_labels}
    
    def predict(self, model, instance):
        return np.full(model['n_labels'], self.value)


class FeatureClassifier(BaseClassifier):
    """Predicts the first feature as the confidence for every label."""
    
    def train(self, dataset, hyperparameters=None):
        return dataset.n_labels
    
    def predict(self, model, instance):
        return np.full(model, instance.features[0])


class ShrinkingClassifier(BaseClassifier):
    """Moves predictions from the truth towards 0.5 as regularization grows."""
    
    def train(self, dataset, hyperparameters=None):
        weight = hyperparameters.regularization_weight
        return weight / (1.0 + weight)
    
    def predict(self, model, instance):
        return (1 - model) * (0.9 * instance.labels + 0.05) + model * 0.5


@pytest.fixture
def small_dataset():
    """Four instances, two labels."""
    features = np.array([
        [0.1, 1.0],
        [0.2, 2.0],
        [0.3, 3.0],
        [0.4, 4.0],
    ])
    labels = np.array([
        [1, 0],
        [0, 1],
        [1, 1],
        [0, 0],
    ])
    return Dataset(features, labels, feature_names=['a', 'b'], label_names=['x', 'y'])


@pytest.fixture
def ordered_dataset():
    """Ten instances whose first feature is their position / 10."""
    n = 10
    features = np.column_stack([np.arange(n) / 10.0, np.ones(n)])
    labels = np.column_stack([np.arange(n) % 2, (np.arange(n) // 2) % 2])
    return Dataset(features, labels)
