"""
Error types raised by the mlcv evaluation harness.

None of these are retried: a failed fold aborts the cross-validation pass,
and a failed pass aborts the tuning run.
"""


class MlcvError(Exception):
    """Base class for all mlcv errors."""


class DataFormatError(MlcvError, ValueError):
    """Malformed dataset or label schema, or two datasets with different schemas."""


class DimensionMismatchError(MlcvError, ValueError):
    """A prediction vector or result set does not have the expected label count."""


class DegenerateConfigurationError(MlcvError, ValueError):
    """Fold count outside the range ``2 <= folds <= n_instances``."""


class OutputDirectoryError(MlcvError, IOError):
    """Output directory is missing, not a directory, or not writable."""
