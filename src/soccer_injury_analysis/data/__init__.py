"""
Data module for soccer muscle-injury analysis.
"""

from .loader import DataLoader
from .recipe import FeatureRecipe, FittedRecipe
from .splitter import DataSplit, Fold, split, make_folds

__all__ = ['DataLoader', 'FeatureRecipe', 'FittedRecipe', 'DataSplit', 'Fold', 'split', 'make_folds']
