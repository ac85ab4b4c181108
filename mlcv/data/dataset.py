"""
Multi-label dataset types.

A Dataset is an ordered, read-only collection of instances sharing one
label schema. Every fold and every tuning candidate reads the same Dataset;
operations that change order or membership return a new Dataset.
"""

from typing import Iterator, List, NamedTuple, Optional, Sequence
import numpy as np

from ..errors import DataFormatError


class Instance(NamedTuple):
    """One labeled instance: feature vector and 0/1 label vector."""
    features: np.ndarray
    labels: np.ndarray


def _read_only(values: np.ndarray) -> np.ndarray:
    values = np.array(values, dtype=float, copy=True)
    values.setflags(write=False)
    return values


class Dataset:
    """
    Immutable multi-label dataset.
    
    Features are stored as an (n, d) matrix and labels as an (n, k) matrix of
    0/1 values. ``label_indices`` records where each label sits among the
    attributes of the source file, so a row can be mapped back to it.
    """
    
    def __init__(
        self,
        features: np.ndarray,
        labels: np.ndarray,
        feature_names: Optional[Sequence[str]] = None,
        label_names: Optional[Sequence[str]] = None,
        label_indices: Optional[Sequence[int]] = None,
        relation: str = "dataset"
    ) -> None:
        """
        Initialize dataset.
        
        Args:
            features: Feature matrix of shape (n_instances, n_features)
            labels: Label matrix of shape (n_instances, n_labels), values in {0, 1}
            feature_names: Feature attribute names (defaults to f0..fd)
            label_names: Label attribute names (defaults to l0..lk)
            label_indices: Positions of the labels among the source attributes
            relation: Relation name of the source file
            
        Raises:
            DataFormatError: If shapes or label values are invalid
        """
        features = np.asarray(features, dtype=float)
        labels = np.asarray(labels, dtype=float)
        
        if features.ndim != 2 or labels.ndim != 2:
            raise DataFormatError(
                f"features and labels must be 2-D, got {features.ndim}-D and {labels.ndim}-D"
            )
        if features.shape[0] != labels.shape[0]:
            raise DataFormatError(
                f"features and labels must have the same number of rows: "
                f"{features.shape[0]} vs {labels.shape[0]}"
            )
        if labels.shape[1] == 0:
            raise DataFormatError("Dataset must have at least one label")
        if not np.isin(labels, (0.0, 1.0)).all():
            raise DataFormatError("Label values must be 0 or 1")
        
        n_features = features.shape[1]
        n_labels = labels.shape[1]
        
        if feature_names is None:
            feature_names = [f"f{i}" for i in range(n_features)]
        if label_names is None:
            label_names = [f"l{j}" for j in range(n_labels)]
        if label_indices is None:
            label_indices = list(range(n_features, n_features + n_labels))
        
        if len(feature_names) != n_features:
            raise DataFormatError(
                f"Expected {n_features} feature names, got {len(feature_names)}"
            )
        if len(label_names) != n_labels or len(label_indices) != n_labels:
            raise DataFormatError(
                f"Expected {n_labels} label names and indices, got "
                f"{len(label_names)} and {len(label_indices)}"
            )
        
        self._features = _read_only(features)
        self._labels = _read_only(labels)
        self.feature_names: List[str] = list(feature_names)
        self.label_names: List[str] = list(label_names)
        self.label_indices: List[int] = [int(i) for i in label_indices]
        self.relation = relation
    
    @property
    def features(self) -> np.ndarray:
        return self._features
    
    @property
    def labels(self) -> np.ndarray:
        return self._labels
    
    @property
    def n_instances(self) -> int:
        return self._features.shape[0]
    
    @property
    def n_features(self) -> int:
        return self._features.shape[1]
    
    @property
    def n_labels(self) -> int:
        return self._labels.shape[1]
    
    def __len__(self) -> int:
        return self.n_instances
    
    def __getitem__(self, index: int) -> Instance:
        return Instance(self._features[index], self._labels[index])
    
    def __iter__(self) -> Iterator[Instance]:
        for i in range(self.n_instances):
            yield self[i]
    
    def same_schema(self, other: 'Dataset') -> bool:
        """Check whether two datasets share feature and label attributes."""
        return (
            self.feature_names == other.feature_names
            and self.label_names == other.label_names
            and self.label_indices == other.label_indices
        )
    
    def subset(self, indices: Sequence[int]) -> 'Dataset':
        """
        Return a new Dataset holding the given instances, in the given order.
        
        Args:
            indices: Instance positions to keep
            
        Returns:
            Dataset with the same schema
        """
        indices = np.asarray(indices, dtype=int)
        return Dataset(
            self._features[indices],
            self._labels[indices],
            feature_names=self.feature_names,
            label_names=self.label_names,
            label_indices=self.label_indices,
            relation=self.relation
        )
    
    def concatenate(self, other: 'Dataset') -> 'Dataset':
        """
        Append another dataset's instances after this one's.
        
        Raises:
            DataFormatError: If the schemas differ
        """
        if not self.same_schema(other):
            raise DataFormatError(
                f"Cannot merge datasets with different schemas: "
                f"'{self.relation}' and '{other.relation}'"
            )
        return Dataset(
            np.vstack([self._features, other.features]),
            np.vstack([self._labels, other.labels]),
            feature_names=self.feature_names,
            label_names=self.label_names,
            label_indices=self.label_indices,
            relation=self.relation
        )
    
    def shuffle(self, random_state: Optional[int] = None) -> 'Dataset':
        """Return a copy with instances in a random order (seeded)."""
        rng = np.random.default_rng(random_state)
        return self.subset(rng.permutation(self.n_instances))
    
    def __repr__(self) -> str:
        return (
            f"Dataset(relation={self.relation!r}, instances={self.n_instances}, "
            f"features={self.n_features}, labels={self.n_labels})"
        )
