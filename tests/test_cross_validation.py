"""
Tests for mlcv.evaluation.cross_validation and mlcv.evaluation.evaluator.

Uses stub classifiers so fold handling and aggregation are tested without
any learning.
"""

import math

import numpy as np
import pytest
from joblib import parallel_backend
from unittest.mock import MagicMock, patch

from mlcv.errors import DegenerateConfigurationError, DimensionMismatchError
from mlcv.evaluation.cross_validation import (
    CrossValidator,
    cross_validate,
    fold_bounds,
    kfold_indices,
    split_fold,
    validate_fold_count,
)
from mlcv.evaluation.evaluator import Evaluator
from mlcv.evaluation.predictions import EPSILON, log_likelihood
from mlcv.models.base_model import BaseClassifier, Hyperparameters
from mlcv.utils.tracking import RunObserver

from conftest import ConstantClassifier, FeatureClassifier, TruthClassifier


class TestFoldPartition:
    """Test deterministic fold construction."""
    
    def test_even_split(self):
        assert [fold_bounds(10, 5, f) for f in range(5)] == [
            (0, 2), (2, 4), (4, 6), (6, 8), (8, 10)
        ]
    
    def test_remainder_goes_to_first_folds(self):
        assert [fold_bounds(10, 3, f) for f in range(3)] == [(0, 4), (4, 7), (7, 10)]
    
    @pytest.mark.parametrize("n,folds", [(10, 2), (10, 3), (11, 4), (7, 7), (100, 10)])
    def test_folds_partition_all_instances(self, n, folds):
        splits = kfold_indices(n, folds)
        
        test_indices = np.concatenate([test for _, test in splits])
        
        assert len(splits) == folds
        np.testing.assert_array_equal(np.sort(test_indices), np.arange(n))
        for train, test in splits:
            assert len(train) + len(test) == n
            assert not set(train) & set(test)
    
    def test_training_fold_keeps_order(self):
        train, test = kfold_indices(6, 3)[1]
        
        np.testing.assert_array_equal(test, [2, 3])
        np.testing.assert_array_equal(train, [0, 1, 4, 5])
    
    def test_split_fold_is_reproducible(self, ordered_dataset):
        train_a, test_a = split_fold(ordered_dataset, 3, 1)
        train_b, test_b = split_fold(ordered_dataset, 3, 1)
        
        np.testing.assert_array_equal(test_a.features, test_b.features)
        np.testing.assert_array_equal(train_a.features, train_b.features)
        np.testing.assert_array_almost_equal(test_a.features[:, 0], [0.4, 0.5, 0.6])
    
    def test_split_fold_matches_fold_indices(self, ordered_dataset):
        for f, (train_idx, test_idx) in enumerate(kfold_indices(10, 4)):
            train, test = split_fold(ordered_dataset, 4, f)

            np.testing.assert_array_equal(train.features, ordered_dataset.features[train_idx])
            np.testing.assert_array_equal(test.labels, ordered_dataset.labels[test_idx])

    def test_split_does_not_modify_dataset(self, ordered_dataset):
        before = ordered_dataset.features.copy()
        
        split_fold(ordered_dataset, 5, 2)
        
        np.testing.assert_array_equal(ordered_dataset.features, before)
    
    @pytest.mark.parametrize("folds", [-1, 0, 1, 11])
    def test_degenerate_fold_counts(self, folds):
        with pytest.raises(DegenerateConfigurationError):
            validate_fold_count(10, folds)
    
    def test_fold_index_out_of_range(self):
        with pytest.raises(ValueError):
            fold_bounds(10, 5, 5)


class TestEvaluator:
    """Test held-out fold evaluation."""
    
    def test_rows_follow_fold_order(self, ordered_dataset):
        evaluator = Evaluator(FeatureClassifier())
        model = FeatureClassifier().train(ordered_dataset)
        
        results = evaluator.evaluate(model, ordered_dataset)
        
        assert (results.rows, results.cols) == (10, 2)
        np.testing.assert_array_almost_equal(results.predictions[:, 0], np.arange(10) / 10.0)
        np.testing.assert_array_equal(results.groundtruth, ordered_dataset.labels)
    
    def test_wrong_confidence_length_raises(self, small_dataset):
        classifier = MagicMock(spec=BaseClassifier)
        classifier.predict.return_value = np.array([0.5, 0.5, 0.5])
        
        with pytest.raises(DimensionMismatchError):
            Evaluator(classifier).evaluate(object(), small_dataset)
    
    def test_nan_confidence_rejected(self, small_dataset):
        classifier = ConstantClassifier(float('nan'))
        model = classifier.train(small_dataset)

        with pytest.raises(ValueError):
            Evaluator(classifier).evaluate(model, small_dataset)

    def test_short_confidence_vector_is_not_padded(self, small_dataset):
        classifier = MagicMock(spec=BaseClassifier)
        classifier.predict.return_value = np.array([0.5])
        
        with pytest.raises(DimensionMismatchError):
            Evaluator(classifier).evaluate(object(), small_dataset)


class TestCrossValidator:
    """Test cross-validation passes."""
    
    def test_returns_one_row_per_instance(self, ordered_dataset):
        results = CrossValidator(ConstantClassifier(0.3)).cross_validate(ordered_dataset, 3)
        
        assert results.rows == ordered_dataset.n_instances
        assert results.cols == ordered_dataset.n_labels
    
    def test_rows_are_in_fold_order(self, ordered_dataset):
        results = CrossValidator(FeatureClassifier()).cross_validate(ordered_dataset, 4)
        
        # Contiguous folds visited in order reproduce the dataset order.
        np.testing.assert_array_almost_equal(results.predictions[:, 0], np.arange(10) / 10.0)
    
    def test_rows_follow_fold_order_after_shuffle(self, ordered_dataset):
        shuffled = ordered_dataset.shuffle(random_state=3)
        
        results = CrossValidator(FeatureClassifier()).cross_validate(shuffled, 5)
        
        np.testing.assert_array_almost_equal(results.predictions[:, 0], shuffled.features[:, 0])
    
    def test_truth_stub_end_to_end(self, small_dataset):
        """Four instances, two labels, two folds, perfect predictions."""
        results = CrossValidator(TruthClassifier()).cross_validate(small_dataset, 2)
        
        assert results.rows == 4
        assert log_likelihood(results) == pytest.approx(4 * 2 * math.log(1 - EPSILON))
    
    def test_one_model_per_fold(self, ordered_dataset):
        classifier = TruthClassifier()
        
        CrossValidator(classifier).cross_validate(ordered_dataset, 5)
        
        models = [model for model, _, _ in classifier.trained]
        assert len(models) == 5
        assert len({id(m) for m in models}) == 5
    
    def test_training_folds_exclude_test_block(self, ordered_dataset):
        classifier = TruthClassifier()
        
        CrossValidator(classifier).cross_validate(ordered_dataset, 5)
        
        for f, (_, train_fold, _) in enumerate(classifier.trained):
            assert train_fold.n_instances == 8
            held_out = {2 * f / 10.0, (2 * f + 1) / 10.0}
            assert not held_out & set(np.round(train_fold.features[:, 0], 6))
    
    def test_hyperparameters_reach_every_fold(self, small_dataset):
        classifier = TruthClassifier()
        hyperparameters = Hyperparameters(hidden_units=3, regularization_weight=0.01)
        
        CrossValidator(classifier).cross_validate(small_dataset, 2, hyperparameters)
        
        assert all(hp == hyperparameters for _, _, hp in classifier.trained)
    
    def test_degenerate_fold_count_trains_nothing(self, small_dataset):
        classifier = TruthClassifier()
        
        with pytest.raises(DegenerateConfigurationError):
            CrossValidator(classifier).cross_validate(small_dataset, 5)
        with pytest.raises(DegenerateConfigurationError):
            CrossValidator(classifier).cross_validate(small_dataset, 1)
        
        assert classifier.trained == []
    
    def test_failed_fold_aborts_pass(self, ordered_dataset):
        classifier = MagicMock(spec=BaseClassifier)
        classifier.train.side_effect = [object(), RuntimeError("training diverged")]
        classifier.predict.return_value = np.array([0.5, 0.5])
        
        with pytest.raises(RuntimeError, match="training diverged"):
            CrossValidator(classifier).cross_validate(ordered_dataset, 3)
        
        assert classifier.train.call_count == 2
    
    def test_observer_sees_every_fold(self, ordered_dataset):
        observer = MagicMock(spec=RunObserver)
        
        CrossValidator(ConstantClassifier(), observer=observer).cross_validate(ordered_dataset, 4)
        
        fold_indices = [c.args[0] for c in observer.on_fold_complete.call_args_list]
        assert fold_indices == [0, 1, 2, 3]
    
    def test_parallel_matches_sequential(self, ordered_dataset):
        sequential = CrossValidator(FeatureClassifier()).cross_validate(ordered_dataset, 5)
        
        with parallel_backend("threading"):
            parallel = CrossValidator(FeatureClassifier(), n_jobs=2).cross_validate(ordered_dataset, 5)
        
        np.testing.assert_array_equal(parallel.predictions, sequential.predictions)
        np.testing.assert_array_equal(parallel.groundtruth, sequential.groundtruth)
    
    def test_progress_bar_does_not_change_results(self, ordered_dataset):
        plain = CrossValidator(FeatureClassifier()).cross_validate(ordered_dataset, 2)
        with_bar = CrossValidator(FeatureClassifier(), show_progress=True).cross_validate(ordered_dataset, 2)
        
        np.testing.assert_array_equal(plain.predictions, with_bar.predictions)
    
    def test_parallel_progress_bar_keeps_fold_order(self, ordered_dataset):
        sequential = CrossValidator(FeatureClassifier()).cross_validate(ordered_dataset, 5)
        
        with parallel_backend("threading"):
            with patch('mlcv.evaluation.cross_validation.tqdm', side_effect=lambda it, **kw: it) as bar:
                parallel = CrossValidator(
                    FeatureClassifier(), n_jobs=2, show_progress=True
                ).cross_validate(ordered_dataset, 5)
        
        bar.assert_called_once()
        assert bar.call_args.kwargs['total'] == 5
        np.testing.assert_array_equal(parallel.predictions, sequential.predictions)
    
    def test_convenience_function(self, small_dataset):
        results = cross_validate(TruthClassifier(), small_dataset, 4)
        
        assert results.rows == 4
