"""
k-fold cross-validation for multi-label classifiers.

Folds are contiguous blocks of the dataset in its current order. With n
instances and F folds, the first ``n % F`` folds hold one extra instance.
The training set of a fold is everything before its block followed by
everything after it.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed
from tqdm import tqdm

from ..data.dataset import Dataset
from ..errors import DegenerateConfigurationError
from ..models.base_model import BaseClassifier, Hyperparameters
from ..utils.logging import LoggingMixin
from ..utils.tracking import RunObserver
from .evaluator import Evaluator
from .predictions import PredictionAccumulator, PredictionResults


def validate_fold_count(n_instances: int, fold_count: int) -> None:
    """
    Check that ``2 <= fold_count <= n_instances``.
    
    Raises:
        DegenerateConfigurationError: If the partition would be degenerate
    """
    if fold_count < 2:
        raise DegenerateConfigurationError(f"Need at least 2 folds, got {fold_count}")
    if fold_count > n_instances:
        raise DegenerateConfigurationError(
            f"Cannot split {n_instances} instances into {fold_count} folds"
        )


def fold_bounds(n_instances: int, fold_count: int, fold_index: int) -> Tuple[int, int]:
    """Return the [start, stop) range of the test block for one fold."""
    if not 0 <= fold_index < fold_count:
        raise ValueError(f"fold_index must be in [0, {fold_count}), got {fold_index}")
    
    base, extra = divmod(n_instances, fold_count)
    size = base + 1 if fold_index < extra else base
    start = fold_index * base + min(fold_index, extra)
    return start, start + size


def fold_indices(n_instances: int, fold_count: int, fold_index: int) -> Tuple[np.ndarray, np.ndarray]:
    """Return (train_idx, test_idx) for one fold."""
    start, stop = fold_bounds(n_instances, fold_count, fold_index)
    all_idx = np.arange(n_instances)
    return np.concatenate([all_idx[:start], all_idx[stop:]]), all_idx[start:stop]


def kfold_indices(n_instances: int, fold_count: int) -> List[Tuple[np.ndarray, np.ndarray]]:
    """
    Generate (train_idx, test_idx) pairs for every fold.
    
    Args:
        n_instances: Number of instances in the dataset
        fold_count: Number of folds
        
    Returns:
        List of index array pairs, one per fold, in fold order
    """
    validate_fold_count(n_instances, fold_count)
    return [fold_indices(n_instances, fold_count, f) for f in range(fold_count)]


def split_fold(dataset: Dataset, fold_count: int, fold_index: int) -> Tuple[Dataset, Dataset]:
    """Build the (train, test) datasets for one fold."""
    validate_fold_count(dataset.n_instances, fold_count)
    train_idx, test_idx = fold_indices(dataset.n_instances, fold_count, fold_index)
    return dataset.subset(train_idx), dataset.subset(test_idx)


def run_fold(
    classifier: BaseClassifier,
    dataset: Dataset,
    fold_count: int,
    fold_index: int,
    hyperparameters: Optional[Hyperparameters] = None
) -> PredictionResults:
    """Train on one fold's training set and evaluate on its test set."""
    train_fold, test_fold = split_fold(dataset, fold_count, fold_index)
    model = classifier.train(train_fold, hyperparameters)
    return Evaluator(classifier).evaluate(model, test_fold)


class CrossValidator(LoggingMixin):
    """
    Runs k-fold cross-validation and pools the held-out predictions.
    
    Features:
    - Deterministic contiguous folds
    - Optional parallel fold execution via joblib
    - Results merged in fold order regardless of completion order
    """
    
    def __init__(
        self,
        classifier: BaseClassifier,
        n_jobs: int = 1,
        show_progress: bool = False,
        observer: Optional[RunObserver] = None,
        logger: Optional[logging.Logger] = None
    ) -> None:
        """
        Initialize cross-validator.
        
        Args:
            classifier: Classifier to train once per fold
            n_jobs: Number of folds to run in parallel (1 for sequential)
            show_progress: Show a progress bar over folds
            observer: Run observer notified after each fold
            logger: Logger for this run (defaults to the class logger)
        """
        self.classifier = classifier
        self.n_jobs = n_jobs
        self.show_progress = show_progress
        self.observer = observer or RunObserver()
        self.logger = logger
    
    def cross_validate(
        self,
        dataset: Dataset,
        fold_count: int,
        hyperparameters: Optional[Hyperparameters] = None
    ) -> PredictionResults:
        """
        Cross-validate the classifier on a dataset.
        
        Args:
            dataset: Dataset to partition (not modified)
            fold_count: Number of folds
            hyperparameters: Hyperparameters used for every fold
            
        Returns:
            Predictions for every instance, grouped by fold in fold order
            
        Raises:
            DegenerateConfigurationError: If fold_count is outside [2, n_instances]
        """
        validate_fold_count(dataset.n_instances, fold_count)
        
        self.log_info(
            f"Cross-validating on {dataset.n_instances} instances with "
            f"{fold_count} folds: {hyperparameters}"
        )
        
        if self.n_jobs == 1:
            fold_results = self._run_sequential(dataset, fold_count, hyperparameters)
        else:
            fold_results = self._run_parallel(dataset, fold_count, hyperparameters)
        
        accumulator = PredictionAccumulator()
        for f, results in enumerate(fold_results):
            accumulator.add(results)
            self.log_info(f"Fold {f + 1}/{fold_count}: {results.rows} test instances")
            self.observer.on_fold_complete(f, fold_count, results)
        
        return accumulator.results
    
    def _progress(self, folds, fold_count: int):
        if not self.show_progress:
            return folds
        return tqdm(folds, total=fold_count, desc="Folds", leave=False)
    
    def _run_sequential(
        self,
        dataset: Dataset,
        fold_count: int,
        hyperparameters: Optional[Hyperparameters]
    ) -> List[PredictionResults]:
        evaluator = Evaluator(self.classifier, logger=self._logger)
        fold_results = []
        folds = kfold_indices(dataset.n_instances, fold_count)
        for train_idx, test_idx in self._progress(folds, fold_count):
            model = self.classifier.train(dataset.subset(train_idx), hyperparameters)
            fold_results.append(evaluator.evaluate(model, dataset.subset(test_idx)))
        return fold_results
    
    def _run_parallel(
        self,
        dataset: Dataset,
        fold_count: int,
        hyperparameters: Optional[Hyperparameters]
    ) -> List[PredictionResults]:
        # Generator output keeps submission order, so folds stay in order.
        fold_results = Parallel(n_jobs=self.n_jobs, return_as="generator")(
            delayed(run_fold)(self.classifier, dataset, fold_count, f, hyperparameters)
            for f in range(fold_count)
        )
        return list(self._progress(fold_results, fold_count))


def cross_validate(
    classifier: BaseClassifier,
    dataset: Dataset,
    fold_count: int,
    hyperparameters: Optional[Hyperparameters] = None,
    n_jobs: int = 1
) -> PredictionResults:
    """
    Convenience function for a single cross-validation pass.
    
    Args:
        classifier: Classifier to evaluate
        dataset: Dataset to partition
        fold_count: Number of folds
        hyperparameters: Training hyperparameters
        n_jobs: Number of folds to run in parallel
        
    Returns:
        Pooled held-out predictions
    """
    return CrossValidator(classifier, n_jobs=n_jobs).cross_validate(
        dataset, fold_count, hyperparameters
    )
