"""
Soccer Injury Analysis Package
Cross-validated model selection for seasonal muscle-injury counts of
European football clubs.
"""

__version__ = "1.0.0"
__author__ = "Soccer Analytics Team"

# Import main classes for easy access
from .config import config
from .data.loader import DataLoader
from .data.splitter import split, make_folds

__all__ = [
    'config',
    'DataLoader',
    'split',
    'make_folds',
]
