"""
Regularization weight tuning for mlcv.

Searches a fixed geometric grid of regularization weights in ascending
order, scoring each by the log-likelihood of its cross-validated
predictions, and stops once the score has fallen twice in a row.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..data.dataset import Dataset
from ..evaluation.cross_validation import CrossValidator, validate_fold_count
from ..evaluation.predictions import PredictionResults, log_likelihood
from ..models.base_model import BaseClassifier, Hyperparameters
from ..utils.logging import LoggingMixin
from ..utils.tracking import RunObserver


REGULARIZATION_GRID: Tuple[float, ...] = (
    1e-10, 1e-8, 1e-6, 1e-4, 1e-2, 1.0, 1e2, 1e4, 1e6, 1e8, 1e10
)


class RegularizationTuner(LoggingMixin):
    """
    Grid search over the regularization weight.
    
    Candidates are always visited in grid order. The best candidate is the
    one with the highest score; on a tie the later candidate wins. The
    search stops after a candidate whose score is below the previous one
    when the previous one was itself below the one before. Both "previous"
    scores start at 0, so two falling negative scores at the start of the
    grid are enough to stop the search.
    """
    
    def __init__(
        self,
        classifier: BaseClassifier,
        grid: Sequence[float] = REGULARIZATION_GRID,
        n_jobs: int = 1,
        show_progress: bool = False,
        shuffle: bool = False,
        random_state: Optional[int] = 42,
        scorer: Callable[[PredictionResults], float] = log_likelihood,
        observer: Optional[RunObserver] = None,
        logger: Optional[logging.Logger] = None
    ) -> None:
        """
        Initialize tuner.
        
        Args:
            classifier: Classifier to train for every fold of every candidate
            grid: Regularization weights, visited in the given order
            n_jobs: Number of folds to run in parallel within a candidate
            show_progress: Show a progress bar over the folds of each candidate
            shuffle: Shuffle the dataset once before the search
            random_state: Seed for the shuffle
            scorer: Maps pooled results to a score (higher is better)
            observer: Run observer for this tuning pass
            logger: Logger for this run (defaults to the class logger)
        """
        if len(grid) == 0:
            raise ValueError("Regularization grid cannot be empty")
        
        self.classifier = classifier
        self.grid = tuple(grid)
        self.n_jobs = n_jobs
        self.shuffle = shuffle
        self.random_state = random_state
        self.scorer = scorer
        self.observer = observer or RunObserver()
        self.logger = logger
        
        self.cross_validator = CrossValidator(
            classifier,
            n_jobs=n_jobs,
            show_progress=show_progress,
            observer=self.observer,
            logger=logger
        )
        
        self.best_index: Optional[int] = None
        self.best_weight: Optional[float] = None
        self.best_score: float = -np.inf
        self.best_results: Optional[PredictionResults] = None
        self.stopped_early = False
        self.history: List[Dict[str, Any]] = []
    
    def tune(
        self,
        dataset: Dataset,
        fold_count: int,
        hidden_units: Optional[int] = None
    ) -> PredictionResults:
        """
        Select the regularization weight by cross-validated log-likelihood.
        
        Args:
            dataset: Dataset to cross-validate on (not modified)
            fold_count: Number of cross-validation folds
            hidden_units: Hidden layer width (None for the classifier default)
            
        Returns:
            Cross-validated predictions of the best candidate
            
        Raises:
            DegenerateConfigurationError: If fold_count is invalid, before any training
        """
        validate_fold_count(dataset.n_instances, fold_count)
        
        if self.shuffle:
            dataset = dataset.shuffle(self.random_state)
        
        self._reset()
        self.log_info(
            f"Tuning regularization weight over {len(self.grid)} candidates "
            f"with {fold_count} folds, hidden_units={hidden_units}"
        )
        self.observer.on_tuning_start(
            self.grid,
            {'fold_count': fold_count, 'hidden_units': hidden_units,
             'n_instances': dataset.n_instances, 'shuffle': self.shuffle}
        )
        
        try:
            self._search(dataset, fold_count, Hyperparameters(hidden_units=hidden_units))
        except Exception as e:
            self.log_error(f"Tuning failed: {e}")
            self.observer.on_tuning_failed(e)
            raise
        
        self.log_info(
            f"Tuning completed. Best regularization weight: {self.best_weight} "
            f"(log-likelihood {self.best_score:.4f})"
        )
        self.observer.on_tuning_complete(self.best_weight, self.best_score)
        
        # best_score starts at -inf, so the first candidate is always taken.
        return self.best_results
    
    def _search(self, dataset: Dataset, fold_count: int, base: Hyperparameters) -> None:
        prev_score, prev_prev_score = 0.0, 0.0
        
        for index, weight in enumerate(self.grid):
            results, score = self._evaluate_candidate(
                dataset, fold_count, base.with_regularization(weight)
            )
            self.log_debug(f"Regularization weight: {weight}; score: {score}")
            self.observer.on_candidate_scored(index, weight, score)
            
            is_best = score >= self.best_score
            if is_best:
                self.best_score = score
                self.best_results = results
                self.best_weight = weight
                self.best_index = index
                self.log_info(f"Best regularization weight so far: {weight}")
                self.observer.on_best_candidate(weight, score)
            
            self.history.append({
                'candidate_index': index,
                'regularization_weight': weight,
                'log_likelihood': score,
                'is_best': is_best
            })
            
            if score < prev_score and prev_score < prev_prev_score:
                self.stopped_early = True
                self.log_info(f"Stopping at regularization weight: {weight}")
                self.observer.on_early_stop(weight)
                break
            
            prev_prev_score = prev_score
            prev_score = score
    
    def _evaluate_candidate(
        self,
        dataset: Dataset,
        fold_count: int,
        hyperparameters: Hyperparameters
    ) -> Tuple[PredictionResults, float]:
        """Cross-validate one candidate and score it."""
        results = self.cross_validator.cross_validate(dataset, fold_count, hyperparameters)
        score = self.scorer(results)
        if np.isnan(score):
            raise ValueError(
                f"Score is NaN for regularization weight {hyperparameters.regularization_weight}"
            )
        return results, score
    
    def _reset(self) -> None:
        self.best_index = None
        self.best_weight = None
        self.best_score = -np.inf
        self.best_results = None
        self.stopped_early = False
        self.history = []
    
    def get_tuning_history(self) -> pd.DataFrame:
        """
        Get the scored candidates as a DataFrame.
        
        ``is_best`` marks candidates that were best at the time they were
        scored; ``selected`` marks the final choice.
        """
        if not self.history:
            return pd.DataFrame(
                columns=['candidate_index', 'regularization_weight',
                         'log_likelihood', 'is_best', 'selected']
            )
        
        history = pd.DataFrame(self.history)
        history['selected'] = history['candidate_index'] == self.best_index
        return history


def tune_regularization(
    classifier: BaseClassifier,
    dataset: Dataset,
    fold_count: int,
    hidden_units: Optional[int] = None,
    n_jobs: int = 1
) -> PredictionResults:
    """
    Convenience function for regularization tuning.
    
    Args:
        classifier: Classifier to tune
        dataset: Dataset to cross-validate on
        fold_count: Number of folds
        hidden_units: Hidden layer width
        n_jobs: Number of folds to run in parallel
        
    Returns:
        Cross-validated predictions of the best candidate
    """
    tuner = RegularizationTuner(classifier, n_jobs=n_jobs)
    return tuner.tune(dataset, fold_count, hidden_units)
