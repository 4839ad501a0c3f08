"""
Stereo Rectification Engine

Computes undistort/rectify remap tables, valid regions and the reprojection
matrix Q from an explicit calibration pair.
"""

import cv2
import numpy as np
from typing import Tuple, Optional
import logging

from ..data_models import CalibrationPair, RectificationMaps
from ..exceptions import DimensionMismatchError, InvalidParameterError
from ..utils.config_manager import ConfigManager


INTERPOLATION_FLAGS = {
    'nearest': cv2.INTER_NEAREST,
    'linear': cv2.INTER_LINEAR,
    'cubic': cv2.INTER_CUBIC,
}


class RectificationEngine:
    """Turns a calibration pair and an image size into rectification maps."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize rectification engine.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        rect_config = self.config.get_rectification_params()

        self.zero_disparity = rect_config.get('zero_disparity', True)
        self.alpha = float(rect_config.get('alpha', -1))

        interpolation = rect_config.get('interpolation', 'linear')
        if interpolation not in INTERPOLATION_FLAGS:
            raise InvalidParameterError(f"Unknown interpolation '{interpolation}'")
        self.interpolation = INTERPOLATION_FLAGS[interpolation]

        self.logger.info(f"Rectification engine initialized: zero_disparity={self.zero_disparity}, "
                         f"alpha={self.alpha}")

    def compute_maps(self,
                     calibration: CalibrationPair,
                     image_size: Tuple[int, int],
                     scale: float = 1.0) -> RectificationMaps:
        """
        Compute rectification maps for a stereo pair.

        Args:
            calibration: Stereo calibration of the unscaled cameras
            image_size: (width, height) of the images being rectified
            scale: Factor the images were resized by before rectification

        Returns:
            Rectification maps for both cameras
        """
        width, height = int(image_size[0]), int(image_size[1])
        if width <= 0 or height <= 0:
            raise InvalidParameterError(f"Image size must be positive, got {image_size}")

        if scale <= 0:
            raise InvalidParameterError(f"Scale factor must be positive, got {scale}")

        calibration = calibration.scaled(scale)
        size = (width, height)

        flags = cv2.CALIB_ZERO_DISPARITY if self.zero_disparity else 0

        R1, R2, P1, P2, Q, roi1, roi2 = cv2.stereoRectify(
            calibration.left.camera_matrix.copy(),
            calibration.left.distortion_coeffs.copy(),
            calibration.right.camera_matrix.copy(),
            calibration.right.distortion_coeffs.copy(),
            size,
            calibration.extrinsics.rotation_matrix.copy(),
            calibration.extrinsics.translation_vector.copy(),
            flags=flags,
            alpha=self.alpha,
            newImageSize=size
        )

        left_map_x, left_map_y = cv2.initUndistortRectifyMap(
            calibration.left.camera_matrix.copy(),
            calibration.left.distortion_coeffs.copy(),
            R1, P1, size, cv2.CV_32FC1
        )

        right_map_x, right_map_y = cv2.initUndistortRectifyMap(
            calibration.right.camera_matrix.copy(),
            calibration.right.distortion_coeffs.copy(),
            R2, P2, size, cv2.CV_32FC1
        )

        self.logger.info(f"Rectification maps computed for {width}x{height}: "
                         f"roi_left={tuple(roi1)}, roi_right={tuple(roi2)}")

        return RectificationMaps(
            left_map_x=left_map_x,
            left_map_y=left_map_y,
            right_map_x=right_map_x,
            right_map_y=right_map_y,
            roi_left=tuple(int(v) for v in roi1),
            roi_right=tuple(int(v) for v in roi2),
            R1=R1,
            R2=R2,
            P1=P1,
            P2=P2,
            Q_matrix=Q,
            image_size=size
        )

    def rectify_pair(self,
                     left_image: np.ndarray,
                     right_image: np.ndarray,
                     rectification_maps: RectificationMaps) -> Tuple[np.ndarray, np.ndarray]:
        """
        Rectify a stereo image pair using precomputed maps.

        Args:
            left_image: Left camera image
            right_image: Right camera image
            rectification_maps: Precomputed rectification maps

        Returns:
            Tuple of (rectified_left, rectified_right)
        """
        if left_image.shape != right_image.shape:
            raise DimensionMismatchError(
                f"Left and right images must have same dimensions: {left_image.shape} vs {right_image.shape}")

        height, width = left_image.shape[:2]
        if (width, height) != tuple(rectification_maps.image_size):
            raise DimensionMismatchError(
                f"Image size {(width, height)} does not match rectification maps {rectification_maps.image_size}")

        rectified_left = cv2.remap(
            left_image,
            rectification_maps.left_map_x,
            rectification_maps.left_map_y,
            self.interpolation
        )

        rectified_right = cv2.remap(
            right_image,
            rectification_maps.right_map_x,
            rectification_maps.right_map_y,
            self.interpolation
        )

        return rectified_left, rectified_right


def resize_pair(left_image: np.ndarray,
                right_image: np.ndarray,
                scale: float) -> Tuple[np.ndarray, np.ndarray]:
    """Resize both images by the same factor (area for shrinking, cubic for enlarging)."""
    if scale <= 0:
        raise InvalidParameterError(f"Scale factor must be positive, got {scale}")

    if scale == 1.0:
        return left_image, right_image

    method = cv2.INTER_AREA if scale < 1 else cv2.INTER_CUBIC
    left = cv2.resize(left_image, None, fx=scale, fy=scale, interpolation=method)
    right = cv2.resize(right_image, None, fx=scale, fy=scale, interpolation=method)
    return left, right
