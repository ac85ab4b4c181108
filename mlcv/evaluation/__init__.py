"""
Model evaluation modules.

Includes:
- predictions: PredictionResults, merging and log-likelihood scoring
- evaluator: Held-out fold evaluation
- cross_validation: k-fold partitioning and cross-validation
"""
