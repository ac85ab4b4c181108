"""
Multi-label dataset loader for mlcv.

Reads MULAN-style datasets: an ARFF file holding features and labels as
attributes, plus an XML sidecar naming which attributes are labels.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union
import xml.etree.ElementTree as ET
import numpy as np
from scipy.io import arff

from ..errors import DataFormatError
from ..utils.logging import LoggingMixin
from .dataset import Dataset


PathLike = Union[str, Path]


class MultiLabelLoader(LoggingMixin):
    """
    Loader for ARFF datasets with an XML label schema.
    
    Only dense ARFF is supported. Label attributes must be nominal {0,1};
    other nominal attributes are encoded by their position in the declared
    value list.
    """
    
    def __init__(self, xml_file: PathLike) -> None:
        """
        Initialize loader.
        
        Args:
            xml_file: Path to the XML file describing the labels
        """
        self.xml_file = Path(xml_file)
        self.label_names = self.read_label_schema(self.xml_file)
        
        self.log_info(f"Initialized loader with {len(self.label_names)} labels from {self.xml_file}")
    
    @staticmethod
    def read_label_schema(xml_file: PathLike) -> List[str]:
        """
        Read label names from a MULAN XML label file.
        
        Hierarchical label files are flattened in document order.
        
        Raises:
            DataFormatError: If the file is not valid XML or declares no labels
        """
        try:
            root = ET.parse(str(xml_file)).getroot()
        except ET.ParseError as e:
            raise DataFormatError(f"Invalid label schema {xml_file}: {e}") from e
        
        names = []
        for element in root.iter():
            tag = element.tag.rsplit('}', 1)[-1]
            if tag != 'label':
                continue
            name = element.get('name')
            if not name:
                raise DataFormatError(f"Label without a name in {xml_file}")
            names.append(name)
        
        if not names:
            raise DataFormatError(f"No labels declared in {xml_file}")
        if len(set(names)) != len(names):
            raise DataFormatError(f"Duplicate label names in {xml_file}")
        
        return names
    
    def load(self, arff_file: PathLike) -> Dataset:
        """
        Load an ARFF file into a Dataset.
        
        Args:
            arff_file: Path to the ARFF data file
            
        Returns:
            Dataset with labels split out according to the XML schema
            
        Raises:
            DataFormatError: If the file cannot be parsed or does not match the schema
        """
        arff_file = Path(arff_file)
        self.log_info(f"Loading dataset: {arff_file}")
        
        try:
            data, meta = arff.loadarff(str(arff_file))
        except (arff.ArffError, ValueError, NotImplementedError, StopIteration) as e:
            # StopIteration: header ended before @data
            raise DataFormatError(f"Cannot parse {arff_file}: {e}") from e
        
        attribute_names = list(meta.names())
        missing = [name for name in self.label_names if name not in attribute_names]
        if missing:
            raise DataFormatError(f"Labels not found in {arff_file}: {missing}")
        
        label_indices = [attribute_names.index(name) for name in self.label_names]
        feature_names = [name for name in attribute_names if name not in self.label_names]
        
        features = np.column_stack(
            [self._encode_column(data, meta, name) for name in feature_names]
        ) if feature_names else np.empty((len(data), 0))
        labels = np.column_stack(
            [self._encode_label(data, meta, name) for name in self.label_names]
        )
        
        if np.isnan(features).any():
            raise DataFormatError(
                f"{arff_file} contains {int(np.isnan(features).sum())} missing feature values"
            )
        
        dataset = Dataset(
            features,
            labels,
            feature_names=feature_names,
            label_names=self.label_names,
            label_indices=label_indices,
            relation=meta.name
        )
        
        self.log_info(
            f"Loaded {dataset.n_instances} instances with "
            f"{dataset.n_features} features and {dataset.n_labels} labels"
        )
        return dataset
    
    def _encode_column(self, data: np.ndarray, meta: arff.MetaData, name: str) -> np.ndarray:
        """Convert one ARFF attribute column to floats."""
        attr_type, attr_range = meta[name]
        column = data[name]
        
        if attr_type == 'numeric':
            return column.astype(float)
        
        if attr_type == 'nominal':
            values = [v.decode() if isinstance(v, bytes) else str(v) for v in column]
            lookup = {value: float(i) for i, value in enumerate(attr_range)}
            return np.array([lookup.get(v, np.nan) for v in values])
        
        raise DataFormatError(f"Unsupported type '{attr_type}' for attribute '{name}'")
    
    def _encode_label(self, data: np.ndarray, meta: arff.MetaData, name: str) -> np.ndarray:
        """Convert a label attribute to a 0/1 column."""
        attr_type, _ = meta[name]
        column = data[name]
        
        if attr_type == 'nominal':
            values = [v.decode() if isinstance(v, bytes) else str(v) for v in column]
        else:
            values = [repr(float(v)) if not np.isnan(v) else '?' for v in column]
        
        encoded = []
        for value in values:
            if value in ('1', '1.0'):
                encoded.append(1.0)
            elif value in ('0', '0.0'):
                encoded.append(0.0)
            else:
                raise DataFormatError(f"Label '{name}' has non-binary value {value!r}")
        
        return np.array(encoded)


def load_dataset(
    arff_file: PathLike,
    xml_file: PathLike,
    test_file: Optional[PathLike] = None
) -> Dataset:
    """
    Load a dataset, optionally appending a second file with the same schema.
    
    Args:
        arff_file: Path to the (training) ARFF file
        xml_file: Path to the XML label schema
        test_file: Optional second ARFF file appended after the first
        
    Returns:
        Loaded Dataset
    """
    loader = MultiLabelLoader(xml_file)
    dataset = loader.load(arff_file)
    if test_file is not None:
        dataset = dataset.concatenate(loader.load(test_file))
    return dataset


def merge_datasets(first_file: PathLike, second_file: PathLike, xml_file: PathLike) -> Dataset:
    """
    Read two ARFF files and return one Dataset with the instances of both.
    
    Used to pool a training and a test split before cross-validation.
    
    Raises:
        DataFormatError: If the two files do not share a schema
    """
    return load_dataset(first_file, xml_file, test_file=second_file)


def load_train_test(
    train_file: PathLike,
    test_file: PathLike,
    xml_file: PathLike
) -> Tuple[Dataset, Dataset]:
    """Load a training and a test split separately."""
    loader = MultiLabelLoader(xml_file)
    train = loader.load(train_file)
    test = loader.load(test_file)
    if not train.same_schema(test):
        raise DataFormatError(f"{train_file} and {test_file} have different schemas")
    return train, test
