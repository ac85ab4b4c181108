"""
Prediction results and log-likelihood scoring.

PredictionResults pairs an (n, k) matrix of predicted label confidences with
the matching (n, k) matrix of ground-truth labels. Results from several
folds are combined with ``merge``; the combined set is scored with
``log_likelihood``.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from ..errors import DimensionMismatchError, OutputDirectoryError


# Confidences are clipped to [EPSILON, 1 - EPSILON] before taking logarithms.
EPSILON = 1e-10

PREDICTIONS_FILE = "predictions.csv"
GROUNDTRUTH_FILE = "groundtruth.csv"


class PredictionResults:
    """
    Predicted confidences and ground truth for a set of instances.
    
    Both matrices always have shape (rows, cols): one row per instance and
    one column per label. Instances are never modified after construction;
    merging builds a new object.
    """
    
    def __init__(self, predictions: np.ndarray, groundtruth: np.ndarray) -> None:
        """
        Initialize prediction results.
        
        Args:
            predictions: Confidences in [0, 1], shape (rows, cols)
            groundtruth: True labels in {0, 1}, shape (rows, cols)
            
        Raises:
            DimensionMismatchError: If the matrices are not 2-D or differ in shape
            ValueError: If values fall outside their allowed ranges
        """
        predictions = np.array(predictions, dtype=float, ndmin=2)
        groundtruth = np.array(groundtruth, dtype=float, ndmin=2)
        
        if predictions.ndim != 2 or groundtruth.ndim != 2:
            raise DimensionMismatchError("predictions and groundtruth must be 2-D")
        if predictions.shape != groundtruth.shape:
            raise DimensionMismatchError(
                f"predictions and groundtruth shapes differ: "
                f"{predictions.shape} vs {groundtruth.shape}"
            )
        if not np.isfinite(predictions).all():
            raise ValueError("Predictions must be finite")
        if ((predictions < 0) | (predictions > 1)).any():
            raise ValueError("Predictions must lie in [0, 1]")
        if not np.isin(groundtruth, (0.0, 1.0)).all():
            raise ValueError("Ground truth values must be 0 or 1")
        
        predictions.setflags(write=False)
        groundtruth.setflags(write=False)
        
        self.predictions = predictions
        self.groundtruth = groundtruth
        self.rows, self.cols = predictions.shape
    
    @classmethod
    def empty(cls, cols: int) -> 'PredictionResults':
        """Results with no rows and ``cols`` labels."""
        return cls(np.empty((0, cols)), np.empty((0, cols)))
    
    def __len__(self) -> int:
        return self.rows
    
    def log_likelihood(self) -> float:
        return log_likelihood(self)
    
    def write_to_directory(self, directory: Optional[Union[str, Path]]) -> Path:
        """
        Write predictions.csv and groundtruth.csv into a directory.
        
        Each row holds one instance's comma separated values. Existing files
        are overwritten.
        
        Args:
            directory: Existing output directory
            
        Returns:
            The output directory
            
        Raises:
            OutputDirectoryError: If the directory is missing or not writable
        """
        output_dir = check_output_directory(directory)
        
        try:
            pd.DataFrame(self.predictions).to_csv(
                output_dir / PREDICTIONS_FILE, header=False, index=False
            )
            pd.DataFrame(self.groundtruth).to_csv(
                output_dir / GROUNDTRUTH_FILE, header=False, index=False
            )
        except OSError as e:
            raise OutputDirectoryError(f"Cannot write results to {output_dir}: {e}") from e
        
        return output_dir
    
    @classmethod
    def read_from_directory(cls, directory: Union[str, Path]) -> 'PredictionResults':
        """Read results previously written by ``write_to_directory``."""
        directory = Path(directory)
        predictions = pd.read_csv(directory / PREDICTIONS_FILE, header=None)
        groundtruth = pd.read_csv(directory / GROUNDTRUTH_FILE, header=None)
        return cls(predictions.to_numpy(dtype=float), groundtruth.to_numpy(dtype=float))
    
    def __repr__(self) -> str:
        return f"PredictionResults(rows={self.rows}, cols={self.cols})"


def check_output_directory(directory: Optional[Union[str, Path]]) -> Path:
    """
    Validate an output directory.
    
    Raises:
        OutputDirectoryError: If the directory is None, missing or not a directory
    """
    if directory is None or str(directory) == "":
        raise OutputDirectoryError("No output directory provided")
    output_dir = Path(directory)
    if not output_dir.is_dir():
        raise OutputDirectoryError(f"Output directory does not exist: {output_dir}")
    return output_dir


def merge(
    existing: Optional[PredictionResults],
    incoming: PredictionResults
) -> PredictionResults:
    """
    Concatenate two result sets.
    
    Rows of ``existing`` come first, in their original order, followed by
    the rows of ``incoming``. When ``existing`` is None the incoming results
    are returned as they are.
    
    Raises:
        DimensionMismatchError: If the label counts differ
    """
    if existing is None:
        return incoming
    
    if existing.cols != incoming.cols:
        raise DimensionMismatchError(
            f"Cannot merge results with {existing.cols} and {incoming.cols} labels"
        )
    
    return PredictionResults(
        np.vstack([existing.predictions, incoming.predictions]),
        np.vstack([existing.groundtruth, incoming.groundtruth])
    )


def log_likelihood(results: PredictionResults, epsilon: float = EPSILON) -> float:
    """
    Total Bernoulli log-likelihood of the ground truth under the predictions.
    
    Confidences are clipped to ``[eps, 1 - eps]`` so every logarithm is taken
    of a value strictly inside (0, 1); a perfect prediction scores
    ``ln(1 - eps)`` rather than 0. The sum over all cells is returned, not
    the mean.
    """
    p = np.clip(results.predictions, epsilon, 1 - epsilon)
    y = results.groundtruth
    cells = y * np.log(p) + (1 - y) * np.log(1 - p)
    return float(np.sum(cells))


class PredictionAccumulator:
    """Running concatenation of per-fold results."""
    
    def __init__(self) -> None:
        self.results: Optional[PredictionResults] = None
        self.n_merged = 0
    
    def add(self, incoming: PredictionResults) -> PredictionResults:
        self.results = merge(self.results, incoming)
        self.n_merged += 1
        return self.results
    
    def log_likelihood(self) -> float:
        if self.results is None:
            raise ValueError("No results have been accumulated")
        return log_likelihood(self.results)
