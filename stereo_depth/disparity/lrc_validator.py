"""
Left-Right Consistency (LRC) Validator

Re-matches from the right image and invalidates left disparities whose
counterpart in the right view disagrees by more than a threshold.
"""

import numpy as np
from dataclasses import replace
from typing import Tuple, Dict, Any, Optional
import logging

from ..data_models import DisparityMap, DISPARITY_SCALE
from ..exceptions import DimensionMismatchError, InvalidParameterError
from ..utils.config_manager import ConfigManager
from .parameters import MatcherParameters


class LRCValidator:
    """Left-Right Consistency validator for disparity map validation."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize LRC validator.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        lrc_config = self.config.get_lrc_params()

        # LRC threshold in pixels
        self.threshold = float(lrc_config.get('threshold', 1.0))
        if self.threshold < 0:
            raise InvalidParameterError("LRC threshold must be non-negative")

        self.logger.info(f"LRC validator initialized: threshold={self.threshold} pixels")

    def compute_right_disparity(self,
                                left_image: np.ndarray,
                                right_image: np.ndarray,
                                estimator,
                                params: Optional[MatcherParameters] = None) -> DisparityMap:
        """
        Compute right-to-left disparity map.

        Both images are mirrored and swapped so the matcher still searches
        towards the left; the result is mirrored back into right-view
        coordinates.

        Args:
            left_image: Left rectified image
            right_image: Right rectified image
            estimator: BM or SGBM estimator instance
            params: Parameters the left view was matched with

        Returns:
            Right disparity map (16-bit fixed point)
        """
        mirrored_right = np.ascontiguousarray(right_image[:, ::-1])
        mirrored_left = np.ascontiguousarray(left_image[:, ::-1])

        if params is not None:
            # Valid regions are expressed in unmirrored coordinates
            params = replace(params, roi_left=None, roi_right=None)

        mirrored = estimator.compute_disparity(mirrored_right, mirrored_left, params)
        mirrored.data = np.ascontiguousarray(mirrored.data[:, ::-1])
        return mirrored

    def validate_consistency(self,
                             left_disparity: DisparityMap,
                             right_disparity: DisparityMap) -> Tuple[DisparityMap, Dict[str, Any]]:
        """
        Perform left-right consistency check.

        Args:
            left_disparity: Left-to-right disparity map
            right_disparity: Right-to-left disparity map

        Returns:
            Tuple of (validated_disparity, metrics)
        """
        if left_disparity.shape != right_disparity.shape:
            raise DimensionMismatchError("Left and right disparity maps must have same dimensions")

        height, width = left_disparity.shape

        left_valid = left_disparity.valid_mask
        right_valid = right_disparity.valid_mask
        left_disp_float = left_disparity.data.astype(np.float32) / DISPARITY_SCALE
        right_disp_float = right_disparity.data.astype(np.float32) / DISPARITY_SCALE

        # Create coordinate grids
        y_coords, x_coords = np.mgrid[0:height, 0:width]

        # Corresponding x coordinates in the right image
        right_x_coords = x_coords - np.rint(left_disp_float).astype(int)

        valid_pixels = left_valid & (right_x_coords >= 0) & (right_x_coords < width)
        consistency_mask = np.zeros((height, width), dtype=bool)

        if np.any(valid_pixels):
            valid_y = y_coords[valid_pixels]
            valid_right_x = right_x_coords[valid_pixels]

            right_disparities = right_disp_float[valid_y, valid_right_x]
            left_disparities = left_disp_float[valid_pixels]

            consistent = (right_valid[valid_y, valid_right_x] &
                          (np.abs(left_disparities - right_disparities) <= self.threshold))

            consistency_mask[valid_pixels] = consistent

        validated = replace(left_disparity, data=left_disparity.data.copy())
        validated.data[~consistency_mask] = left_disparity.invalid_value

        # Calculate metrics
        total_valid_left = int(np.count_nonzero(left_valid))
        total_consistent = int(np.count_nonzero(consistency_mask))

        metrics = {
            'total_pixels': left_disparity.data.size,
            'valid_left_pixels': total_valid_left,
            'consistent_pixels': total_consistent,
            'consistency_ratio': total_consistent / total_valid_left if total_valid_left > 0 else 0.0,
            'error_rate': 1.0 - (total_consistent / total_valid_left) if total_valid_left > 0 else 1.0
        }

        self.logger.debug(f"LRC validation: {total_consistent}/{total_valid_left} pixels consistent "
                          f"({metrics['consistency_ratio']:.3f})")

        return validated, metrics

    def set_threshold(self, threshold: float) -> None:
        """
        Update LRC threshold.

        Args:
            threshold: New threshold in pixels
        """
        if threshold < 0:
            raise InvalidParameterError("LRC threshold must be non-negative")

        self.threshold = threshold
        self.logger.info(f"LRC threshold updated to {threshold} pixels")
