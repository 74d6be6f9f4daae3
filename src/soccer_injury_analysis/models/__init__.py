"""Models module for soccer muscle-injury analysis."""

from .families import FAMILIES, ModelFamily, get_family
from .grid_search import GridResultCache, GridSearchResult, grid_search
from .selection import choose_finalists, rank_families, select_best
from .evaluation import TestEvaluator, evaluate

__all__ = [
    'FAMILIES', 'ModelFamily', 'get_family',
    'GridResultCache', 'GridSearchResult', 'grid_search',
    'choose_finalists', 'rank_families', 'select_best',
    'TestEvaluator', 'evaluate',
]
