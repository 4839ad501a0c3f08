"""
Block Matching (BM) Disparity Estimator

Windowed sum-of-absolute-differences matching on contrast-normalized
grayscale images, with texture, uniqueness and left-right checks.
"""

import cv2
import numpy as np
from typing import Optional, Tuple
import logging

from ..data_models import DisparityMap
from ..utils.config_manager import ConfigManager
from .parameters import MatcherParameters, StereoAlgorithm, Rect
from .matching_utils import check_image_pair, normalize_invalid, to_grayscale


class BMEstimator:
    """Local block matching disparity estimator for grayscale images."""

    algorithm = StereoAlgorithm.BM

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize block matching estimator.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        stereo_config = self.config.get_stereo_params()
        self.params = MatcherParameters.from_config(
            self.config.get_bm_params(),
            min_disparity=stereo_config.get('min_disparity'),
            num_disparities=stereo_config.get('num_disparities')
        )
        self.params.validate(self.algorithm)

        self.logger.info(f"BM estimator initialized: block_size={self.params.block_size}, "
                         f"texture_threshold={self.params.texture_threshold}")

    def create_matcher(self, params: MatcherParameters) -> cv2.StereoBM:
        """Create a block matcher from resolved parameters."""
        matcher = cv2.StereoBM_create(numDisparities=params.num_disparities, blockSize=params.block_size)
        matcher.setPreFilterCap(params.pre_filter_cap)
        matcher.setMinDisparity(params.min_disparity)
        matcher.setTextureThreshold(params.texture_threshold)
        matcher.setUniquenessRatio(params.uniqueness_ratio)
        matcher.setSpeckleWindowSize(params.speckle_window_size)
        matcher.setSpeckleRange(params.speckle_range)
        matcher.setDisp12MaxDiff(params.disp12_max_diff)

        if _has_area(params.roi_left):
            matcher.setROI1(tuple(int(v) for v in params.roi_left))
        if _has_area(params.roi_right):
            matcher.setROI2(tuple(int(v) for v in params.roi_right))

        return matcher

    def resolve_parameters(self,
                           image: np.ndarray,
                           params: Optional[MatcherParameters] = None) -> MatcherParameters:
        """Fill the image-dependent search range for ``image``."""
        params = params or self.params
        return params.resolve(image.shape[1], 1, self.algorithm)

    def compute_disparity(self,
                          left_image: np.ndarray,
                          right_image: np.ndarray,
                          params: Optional[MatcherParameters] = None) -> DisparityMap:
        """
        Compute disparity map using block matching.

        Args:
            left_image: Left rectified image; color input is converted to grayscale
            right_image: Right rectified image
            params: Parameter override for this call

        Returns:
            Disparity map (16-bit fixed point, divide by 16 for actual disparity)
        """
        check_image_pair(left_image, right_image)

        if left_image.ndim == 3:
            self.logger.debug("Block matching needs single-channel input, converting to grayscale")
        left_gray = to_grayscale(left_image)
        right_gray = to_grayscale(right_image)

        resolved = self.resolve_parameters(left_gray, params)

        matcher = self.create_matcher(resolved)
        raw = matcher.compute(left_gray, right_gray)

        disparity = DisparityMap(
            data=normalize_invalid(raw, resolved),
            min_disparity=resolved.min_disparity,
            num_disparities=resolved.num_disparities,
            algorithm=self.algorithm.value
        )

        self.logger.debug(f"Computed disparity map: {np.count_nonzero(disparity.valid_mask)} valid pixels")

        return disparity

    def get_disparity_range(self, image_width: int) -> Tuple[int, int]:
        """
        Get the disparity search range for a given image width.

        Returns:
            Tuple of (min_disparity, max_disparity)
        """
        resolved = self.params.resolve(image_width, 1, self.algorithm)
        return resolved.min_disparity, resolved.max_disparity

    def update_parameters(self, **kwargs) -> None:
        """Update BM parameters, validating them before they take effect."""
        candidate = MatcherParameters(**{**self.params.__dict__, **kwargs})
        candidate.validate(self.algorithm)
        self.params = candidate
        self.logger.info(f"BM parameters updated: {sorted(kwargs)}")


def _has_area(roi: Optional[Rect]) -> bool:
    return roi is not None and roi[2] > 0 and roi[3] > 0
