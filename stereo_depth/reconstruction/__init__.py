"""
3D Reconstruction Module

Implements disparity to depth conversion and point cloud reprojection.
"""

from .depth_converter import DepthConverter
from .point_cloud_generator import PointCloudGenerator

__all__ = ['DepthConverter', 'PointCloudGenerator']
