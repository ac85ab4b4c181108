"""
Hyperparameter tuning modules.

Includes:
- grid_tuner: Regularization weight grid search with early stopping
"""
