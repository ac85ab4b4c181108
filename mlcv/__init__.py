"""
mlcv - Multi-label cross-validation harness

Cross-validated evaluation of multi-label neural network classifiers, with
log-likelihood scoring and a regularization weight grid search.
"""

__version__ = "0.1.0"
__author__ = "mlcv"
