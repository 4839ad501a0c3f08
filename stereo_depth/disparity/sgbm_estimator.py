"""
Semi-Global Block Matching (SGBM) Disparity Estimator

Pixel-wise matching cost aggregated along 1-D paths with P1/P2 smoothness
penalties. Supports the 5-path, full 8-path and 3-way modes.
"""

import cv2
import numpy as np
from typing import Optional
import logging

from ..data_models import DisparityMap
from ..exceptions import InvalidParameterError
from ..utils.config_manager import ConfigManager
from .parameters import MatcherParameters, StereoAlgorithm
from .matching_utils import check_image_pair, channel_count, normalize_invalid


SGBM_MODES = {
    StereoAlgorithm.SGBM: cv2.StereoSGBM_MODE_SGBM,
    StereoAlgorithm.SGBM_FULL: cv2.StereoSGBM_MODE_HH,
    StereoAlgorithm.SGBM_3WAY: cv2.StereoSGBM_MODE_SGBM_3WAY,
}


class SGBMEstimator:
    """Semi-global disparity estimator accepting grayscale or color input."""

    def __init__(self,
                 config_manager: Optional[ConfigManager] = None,
                 algorithm: StereoAlgorithm = StereoAlgorithm.SGBM):
        """
        Initialize SGBM estimator.

        Args:
            config_manager: Configuration manager instance
            algorithm: Which semi-global mode to run
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        algorithm = StereoAlgorithm.from_name(algorithm)
        if not algorithm.is_semi_global:
            raise InvalidParameterError(f"SGBMEstimator cannot run '{algorithm.value}'")
        self.algorithm = algorithm
        self.mode = SGBM_MODES[algorithm]

        stereo_config = self.config.get_stereo_params()
        self.params = MatcherParameters.from_config(
            self.config.get_sgbm_params(),
            min_disparity=stereo_config.get('min_disparity'),
            num_disparities=stereo_config.get('num_disparities')
        )
        self.params.validate(self.algorithm)

        self.logger.info(f"SGBM estimator initialized: mode={self.algorithm.value}, "
                         f"block_size={self.params.block_size}, num_disparities={self.params.num_disparities}")

    def create_matcher(self, params: MatcherParameters) -> cv2.StereoSGBM:
        """Create an SGBM matcher from resolved parameters."""
        return cv2.StereoSGBM_create(
            minDisparity=params.min_disparity,
            numDisparities=params.num_disparities,
            blockSize=params.block_size,
            P1=params.P1,
            P2=params.P2,
            disp12MaxDiff=params.disp12_max_diff,
            preFilterCap=params.pre_filter_cap,
            uniquenessRatio=params.uniqueness_ratio,
            speckleWindowSize=params.speckle_window_size,
            speckleRange=params.speckle_range,
            mode=self.mode
        )

    def resolve_parameters(self,
                           image: np.ndarray,
                           params: Optional[MatcherParameters] = None) -> MatcherParameters:
        """Fill image-dependent defaults (search range, P1, P2) for ``image``."""
        params = params or self.params
        return params.resolve(image.shape[1], channel_count(image), self.algorithm)

    def compute_disparity(self,
                          left_image: np.ndarray,
                          right_image: np.ndarray,
                          params: Optional[MatcherParameters] = None) -> DisparityMap:
        """
        Compute disparity map using SGBM.

        Args:
            left_image: Left rectified image (8-bit, 1 or 3 channels)
            right_image: Right rectified image
            params: Parameter override for this call

        Returns:
            Disparity map (16-bit fixed point, divide by 16 for actual disparity)
        """
        check_image_pair(left_image, right_image)
        resolved = self.resolve_parameters(left_image, params)

        # A fresh matcher per call keeps concurrent calls independent
        matcher = self.create_matcher(resolved)
        raw = matcher.compute(left_image, right_image)

        disparity = DisparityMap(
            data=normalize_invalid(raw, resolved),
            min_disparity=resolved.min_disparity,
            num_disparities=resolved.num_disparities,
            algorithm=self.algorithm.value
        )

        self.logger.debug(f"Computed disparity map: {np.count_nonzero(disparity.valid_mask)} valid pixels "
                          f"(P1={resolved.P1}, P2={resolved.P2})")

        return disparity

    def get_disparity_range(self, image_width: int):
        """
        Get the disparity search range for a given image width.

        Returns:
            Tuple of (min_disparity, max_disparity)
        """
        resolved = self.params.resolve(image_width, 1, self.algorithm)
        return resolved.min_disparity, resolved.max_disparity

    def update_parameters(self, **kwargs) -> None:
        """
        Update SGBM parameters.

        Args:
            **kwargs: Parameter updates, validated before they take effect
        """
        candidate = MatcherParameters(**{**self.params.__dict__, **kwargs})
        candidate.validate(self.algorithm)
        self.params = candidate
        self.logger.info(f"SGBM parameters updated: {sorted(kwargs)}")
