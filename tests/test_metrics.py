"""
Unit tests for metrics module.
"""
import unittest
import pandas as pd
import numpy as np
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from soccer_injury_analysis.utils.metrics import ModelEvaluator, aggregate_fold_errors, rmse


class TestFoldAggregation(unittest.TestCase):
    """Test cases for rmse and fold aggregation."""

    def test_rmse(self):
        """Test root-mean-squared error."""
        self.assertAlmostEqual(rmse([1, 2, 3], [1, 2, 3]), 0.0)
        self.assertAlmostEqual(rmse([0, 0], [3, 4]), np.sqrt(12.5))

    def test_aggregate_fold_errors(self):
        """Test mean and standard error of fold errors."""
        errors = [4.0, 5.0, 6.0, 7.0]
        mean, std_err = aggregate_fold_errors(errors)

        self.assertAlmostEqual(mean, 5.5)
        self.assertAlmostEqual(std_err, np.std(errors, ddof=1) / 2)

    def test_aggregate_single_fold(self):
        """Test that one error has an undefined standard error."""
        mean, std_err = aggregate_fold_errors([3.2])
        self.assertAlmostEqual(mean, 3.2)
        self.assertTrue(np.isnan(std_err))

    def test_aggregate_empty(self):
        """Test that no errors cannot be aggregated."""
        with self.assertRaises(ValueError):
            aggregate_fold_errors([])


class TestModelEvaluator(unittest.TestCase):
    """Test cases for ModelEvaluator class."""

    def setUp(self):
        """Set up test fixtures."""
        self.evaluator = ModelEvaluator()

        np.random.seed(42)
        self.y_true = np.random.poisson(10, 100)
        self.y_pred = self.y_true + np.random.normal(0, 2, 100)

    def test_calculate_regression_metrics(self):
        """Test regression metrics calculation."""
        metrics = self.evaluator.calculate_regression_metrics(self.y_true, self.y_pred)

        expected_keys = ['rmse', 'mae', 'r2', 'bias']
        for key in expected_keys:
            self.assertIn(key, metrics)

        self.assertGreater(metrics['rmse'], 0)
        self.assertGreaterEqual(metrics['rmse'], metrics['mae'])
        self.assertLess(metrics['r2'], 1)
        self.assertAlmostEqual(metrics['bias'], float(np.mean(self.y_pred - self.y_true)))

    def test_perfect_predictions(self):
        """Test metrics of a perfect fit."""
        metrics = self.evaluator.calculate_regression_metrics(self.y_true, self.y_true)
        self.assertAlmostEqual(metrics['rmse'], 0.0)
        self.assertAlmostEqual(metrics['r2'], 1.0)

    def test_compare_models(self):
        """Test model comparison functionality."""
        models_results = {
            'random_forest': {'rmse': 5.2, 'mae': 4.0},
            'linear': {'rmse': 5.6, 'mae': 4.4},
            'polynomial': {'rmse': 5.4, 'mae': 4.1},
        }

        comparison = self.evaluator.compare_models(models_results)

        self.assertIsInstance(comparison, pd.DataFrame)
        self.assertEqual(len(comparison), 3)
        self.assertListEqual(list(comparison.index), ['random_forest', 'polynomial', 'linear'])


if __name__ == '__main__':
    unittest.main()
