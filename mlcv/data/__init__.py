"""
Data modules for mlcv.

Includes:
- dataset: Immutable multi-label Dataset and Instance types
- loader: ARFF + XML label-schema loading and dataset merging
"""
