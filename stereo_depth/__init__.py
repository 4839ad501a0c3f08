"""
Stereo Depth Pipeline

Converts a stereo image pair into a dense disparity map, a metric depth map
and a 3D point cloud, given a known stereo calibration.

This package implements:
- Stereo rectification with zero-disparity principal point alignment
- Dense disparity estimation with block matching and semi-global matching
- Left-right consistency checking and speckle filtering
- Disparity to metric depth conversion with an explicit no-depth marker
- Reprojection to a far-plane filtered 3D point cloud
"""

__version__ = "1.0.0"
__author__ = "Stereo Depth Team"

from .calibration import RectificationEngine, load_calibration
from .disparity import DisparityEstimator, BMEstimator, SGBMEstimator, LRCValidator, MatcherParameters, StereoAlgorithm
from .reconstruction import DepthConverter, PointCloudGenerator
from .pipeline import StereoDepthPipeline, PipelineResult
from .data_models import (
    CameraIntrinsics, StereoExtrinsics, CalibrationPair, RectificationMaps,
    DisparityMap, DepthMap, PointCloud
)
from .exceptions import (
    StereoDepthError, ConfigurationError, InvalidParameterError,
    DimensionMismatchError, UnsupportedFormatError
)

__all__ = [
    # Calibration
    'RectificationEngine', 'load_calibration',
    # Disparity
    'DisparityEstimator', 'BMEstimator', 'SGBMEstimator', 'LRCValidator',
    'MatcherParameters', 'StereoAlgorithm',
    # Reconstruction
    'DepthConverter', 'PointCloudGenerator',
    # Pipeline
    'StereoDepthPipeline', 'PipelineResult',
    # Data Models
    'CameraIntrinsics', 'StereoExtrinsics', 'CalibrationPair', 'RectificationMaps',
    'DisparityMap', 'DepthMap', 'PointCloud',
    # Errors
    'StereoDepthError', 'ConfigurationError', 'InvalidParameterError',
    'DimensionMismatchError', 'UnsupportedFormatError'
]
