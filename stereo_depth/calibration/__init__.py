"""
Calibration and Rectification Module

Loads stereo calibration files and computes rectification maps.
"""

from .calibration_loader import load_calibration, save_calibration
from .rectification_engine import RectificationEngine, resize_pair

__all__ = ['load_calibration', 'save_calibration', 'RectificationEngine', 'resize_pair']
