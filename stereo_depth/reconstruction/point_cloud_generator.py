"""
Point Cloud Generator

Reprojects valid disparities through the Q matrix and drops points at or
beyond the far plane.
"""

import cv2
import numpy as np
from typing import Optional
import logging

from ..data_models import DisparityMap, PointCloud, DISPARITY_SCALE
from ..exceptions import DimensionMismatchError, InvalidParameterError
from ..utils.config_manager import ConfigManager

# Points whose depth lands on the far plane within this tolerance are sentinels
FAR_PLANE_EPSILON = float(np.finfo(np.float32).eps)


class PointCloudGenerator:
    """Turns disparity maps into scan-ordered 3D point clouds."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize point cloud generator.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        pc_config = self.config.get_point_cloud_params()
        self.max_depth = float(pc_config.get('max_depth', 1.0e4))
        if self.max_depth <= 0:
            raise InvalidParameterError(f"max_depth must be positive, got {self.max_depth}")

        self.logger.info(f"Point cloud generator initialized: max_depth={self.max_depth}")

    def reproject_to_3d(self, disparity: DisparityMap, Q_matrix: np.ndarray) -> np.ndarray:
        """
        Reproject every pixel to 3D.

        Args:
            disparity: Disparity map (16-bit fixed point)
            Q_matrix: 4x4 reprojection matrix

        Returns:
            HxWx3 float32 image of (X, Y, Z); invalid pixels carry meaningless values
        """
        Q = np.asarray(Q_matrix, dtype=np.float64)
        if Q.shape != (4, 4):
            raise DimensionMismatchError(f"Q matrix must be 4x4, got {Q.shape}")

        disparity_px = disparity.data.astype(np.float32) / DISPARITY_SCALE

        return cv2.reprojectImageTo3D(disparity_px, Q.copy(), handleMissingValues=False)

    def reproject(self, disparity: DisparityMap, Q_matrix: np.ndarray) -> PointCloud:
        """
        Build the filtered point cloud of a disparity map.

        Args:
            disparity: Disparity map (16-bit fixed point)
            Q_matrix: 4x4 reprojection matrix

        Returns:
            One point per valid pixel whose depth lies inside the far plane, in scan order
        """
        xyz = self.reproject_to_3d(disparity, Q_matrix)
        keep = self.far_plane_mask(xyz) & disparity.usable_mask

        points = xyz[keep].astype(np.float32)
        pixel_coords = np.argwhere(keep).astype(np.int32)

        self.logger.info(f"Point cloud generated: {len(points)} points "
                         f"from {np.count_nonzero(disparity.valid_mask)} valid pixels")

        return PointCloud(points=points, pixel_coords=pixel_coords)

    def far_plane_mask(self, xyz: np.ndarray) -> np.ndarray:
        """True where a reprojected point is finite and strictly inside the far plane."""
        z = xyz[..., 2].astype(np.float64)

        finite = np.all(np.isfinite(xyz), axis=-1)
        with np.errstate(invalid='ignore'):
            beyond = np.abs(z) > self.max_depth
            on_plane = np.abs(z - self.max_depth) < FAR_PLANE_EPSILON

        return finite & ~beyond & ~on_plane
