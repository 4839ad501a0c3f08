"""
Disparity Estimation Module

Implements block matching and semi-global matching with LRC checking and
speckle filtering.
"""

from .parameters import MatcherParameters, StereoAlgorithm
from .bm_estimator import BMEstimator
from .sgbm_estimator import SGBMEstimator
from .lrc_validator import LRCValidator
from .disparity_estimator import DisparityEstimator

__all__ = ['MatcherParameters', 'StereoAlgorithm', 'BMEstimator', 'SGBMEstimator',
           'LRCValidator', 'DisparityEstimator']
