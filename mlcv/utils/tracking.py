"""
Run observers for cross-validation and tuning passes.

An observer is handed to a CrossValidator or RegularizationTuner and is
notified as folds finish and candidates are scored. Its lifetime is one run.
"""

import logging
from typing import Any, Dict, Optional, Sequence

import mlflow

from .logging import LoggingMixin


class RunObserver:
    """Observer with no-op hooks. Subclass and override what you need."""
    
    def on_fold_complete(self, fold_index: int, fold_count: int, results: Any) -> None:
        pass
    
    def on_tuning_start(self, grid: Sequence[float], params: Dict[str, Any]) -> None:
        pass
    
    def on_candidate_scored(self, index: int, regularization_weight: float, score: float) -> None:
        pass
    
    def on_best_candidate(self, regularization_weight: float, score: float) -> None:
        pass
    
    def on_early_stop(self, regularization_weight: float) -> None:
        pass
    
    def on_tuning_complete(self, best_weight: Optional[float], best_score: float) -> None:
        pass
    
    def on_tuning_failed(self, error: BaseException) -> None:
        pass


class LoggingObserver(RunObserver, LoggingMixin):
    """Writes fold and candidate events through a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger

    def on_fold_complete(self, fold_index: int, fold_count: int, results: Any) -> None:
        self.log_debug(f"Fold {fold_index + 1}/{fold_count} complete")

    def on_tuning_start(self, grid: Sequence[float], params: Dict[str, Any]) -> None:
        self.log_info(f"Tuning over {len(grid)} regularization weights: {params}")

    def on_candidate_scored(self, index: int, regularization_weight: float, score: float) -> None:
        self.log_info(
            f"Candidate {index}: regularization weight {regularization_weight:g}, "
            f"log-likelihood {score:.4f}"
        )

    def on_early_stop(self, regularization_weight: float) -> None:
        self.log_info(f"Scores fell twice in a row; stopped at {regularization_weight:g}")

    def on_tuning_complete(self, best_weight: Optional[float], best_score: float) -> None:
        self.log_info(f"Selected regularization weight {best_weight:g} ({best_score:.4f})")

    def on_tuning_failed(self, error: BaseException) -> None:
        self.log_error(f"Tuning failed: {error}")


class MlflowObserver(RunObserver, LoggingMixin):
    """
    Records a tuning pass as an MLflow run.
    
    Each candidate's log-likelihood is logged as the ``log_likelihood``
    metric with the candidate index as step. If MLflow cannot be set up the
    observer logs a warning and records nothing.
    """
    
    def __init__(
        self,
        experiment_name: str = "mlcv-regularization-tuning",
        tracking_uri: Optional[str] = None,
        run_name: Optional[str] = None
    ) -> None:
        """
        Initialize MLflow observer.
        
        Args:
            experiment_name: MLflow experiment name
            tracking_uri: MLflow tracking URI (None for local)
            run_name: Name for the tuning run
        """
        self.experiment_name = experiment_name
        self.run_name = run_name
        self.enabled = False
        self.active_run = None
        
        if tracking_uri:
            mlflow.set_tracking_uri(tracking_uri)
        
        try:
            experiment = mlflow.get_experiment_by_name(experiment_name)
            if experiment is None:
                experiment_id = mlflow.create_experiment(experiment_name)
                self.log_info(f"Created MLflow experiment: {experiment_name}")
            else:
                experiment_id = experiment.experiment_id
                self.log_info(f"Using existing MLflow experiment: {experiment_name}")
            
            mlflow.set_experiment(experiment_id=experiment_id)
            self.enabled = True
            
        except Exception as e:
            self.log_warning(f"MLflow setup failed: {e}")
    
    def on_tuning_start(self, grid: Sequence[float], params: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        self.active_run = mlflow.start_run(run_name=self.run_name)
        mlflow.log_params(params)
        mlflow.log_param("grid_size", len(grid))
    
    def on_candidate_scored(self, index: int, regularization_weight: float, score: float) -> None:
        if self.active_run is None:
            return
        mlflow.log_metric("log_likelihood", score, step=index)
        mlflow.log_metric("regularization_weight", regularization_weight, step=index)
    
    def on_early_stop(self, regularization_weight: float) -> None:
        if self.active_run is None:
            return
        mlflow.log_param("stopped_at_weight", regularization_weight)
    
    def on_tuning_complete(self, best_weight: Optional[float], best_score: float) -> None:
        if self.active_run is None:
            return
        mlflow.log_param("best_regularization_weight", best_weight)
        mlflow.log_metric("best_log_likelihood", best_score)
        mlflow.end_run()
        self.active_run = None
    
    def on_tuning_failed(self, error: BaseException) -> None:
        if self.active_run is None:
            return
        mlflow.end_run(status="FAILED")
        self.active_run = None
