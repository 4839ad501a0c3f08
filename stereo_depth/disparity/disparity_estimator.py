"""
Disparity Estimator

Single entry point over the block matching and semi-global matchers:
parameter validation, matching, optional left-right re-check and speckle
post-filtering.
"""

import cv2
import numpy as np
from typing import Optional, Dict, Any, Union
import logging

from ..data_models import DisparityMap
from ..utils.config_manager import ConfigManager
from .parameters import MatcherParameters, StereoAlgorithm
from .bm_estimator import BMEstimator
from .sgbm_estimator import SGBMEstimator
from .lrc_validator import LRCValidator
from .matching_utils import check_image_pair, filter_speckles


class DisparityEstimator:
    """Computes dense disparity maps with a caller-selected algorithm."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize disparity estimator.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        self.default_algorithm = StereoAlgorithm.from_name(self.config.get('stereo.algorithm', 'sgbm'))
        self.lrc_enabled = bool(self.config.get('lrc.enabled', False))
        self.lrc_validator = LRCValidator(self.config) if self.lrc_enabled else None

        num_threads = self.config.get_parallel_params().get('num_threads')
        if num_threads is not None:
            cv2.setNumThreads(int(num_threads))

        self._estimators: Dict[StereoAlgorithm, Union[BMEstimator, SGBMEstimator]] = {}

        self.logger.info(f"Disparity estimator initialized: default algorithm={self.default_algorithm.value}, "
                         f"lrc={'on' if self.lrc_enabled else 'off'}")

    def get_estimator(self, algorithm: Union[str, StereoAlgorithm]) -> Union[BMEstimator, SGBMEstimator]:
        """Return the matcher implementing ``algorithm``."""
        algorithm = StereoAlgorithm.from_name(algorithm)
        if algorithm not in self._estimators:
            if algorithm is StereoAlgorithm.BM:
                self._estimators[algorithm] = BMEstimator(self.config)
            else:
                self._estimators[algorithm] = SGBMEstimator(self.config, algorithm)
        return self._estimators[algorithm]

    def default_parameters(self, algorithm: Union[str, StereoAlgorithm, None] = None) -> MatcherParameters:
        """Configured parameters of ``algorithm`` before image-dependent defaults."""
        return self.get_estimator(algorithm or self.default_algorithm).params

    def estimate(self,
                 left_image: np.ndarray,
                 right_image: np.ndarray,
                 algorithm: Union[str, StereoAlgorithm, None] = None,
                 params: Optional[MatcherParameters] = None) -> DisparityMap:
        """
        Compute the disparity map of a rectified pair.

        Args:
            left_image: Left rectified image
            right_image: Right rectified image
            algorithm: Algorithm name; defaults to the configured one
            params: Matcher parameters; defaults to the configured ones

        Returns:
            Disparity map at 1/16 pixel resolution with invalid pixels
            holding the negative sentinel
        """
        check_image_pair(left_image, right_image)

        estimator = self.get_estimator(algorithm or self.default_algorithm)

        # Fail before any matching starts
        resolved = estimator.resolve_parameters(left_image, params)

        disparity = estimator.compute_disparity(left_image, right_image, resolved)

        if self.lrc_validator is not None:
            right_disparity = self.lrc_validator.compute_right_disparity(
                left_image, right_image, estimator, resolved)
            disparity, lrc_metrics = self.lrc_validator.validate_consistency(disparity, right_disparity)

            # Consistency pruning can leave small islands behind
            disparity.data, removed = filter_speckles(disparity.data, resolved)
            self.logger.debug(f"LRC error rate {lrc_metrics['error_rate']:.3f}, "
                              f"{removed} speckle pixels removed")

        self.logger.info(f"Disparity computed with {estimator.algorithm.value}: "
                         f"{disparity.valid_ratio:.1%} valid pixels")

        return disparity

    def validate_disparity_map(self, disparity: DisparityMap) -> Dict[str, Any]:
        """
        Validate disparity map quality.

        Args:
            disparity: Disparity map (16-bit fixed point)

        Returns:
            Validation metrics
        """
        valid_mask = disparity.valid_mask
        valid_pixels = int(np.count_nonzero(valid_mask))
        total_pixels = disparity.data.size

        # Valid pixels with zero disparity have no finite depth
        metrics = {
            'valid_pixel_ratio': disparity.valid_ratio,
            'usable_pixel_ratio': disparity.usable_ratio,
            'total_pixels': total_pixels,
            'valid_pixels': valid_pixels,
            'usable_pixels': int(np.count_nonzero(disparity.usable_mask)),
            'mean_disparity': 0.0,
            'std_disparity': 0.0,
            'min_disparity': 0.0,
            'max_disparity': 0.0
        }

        if valid_pixels > 0:
            valid_disparities = disparity.to_pixels()[valid_mask]
            metrics.update({
                'mean_disparity': float(np.mean(valid_disparities)),
                'std_disparity': float(np.std(valid_disparities)),
                'min_disparity': float(np.min(valid_disparities)),
                'max_disparity': float(np.max(valid_disparities))
            })

        return metrics

    def create_disparity_visualization(self, disparity: DisparityMap) -> np.ndarray:
        """
        Create a color-coded visualization of the disparity map.

        Args:
            disparity: Disparity map (16-bit fixed point)

        Returns:
            BGR image, invalid pixels black
        """
        valid_mask = disparity.valid_mask
        disp_norm = np.zeros(disparity.shape, dtype=np.uint8)

        if np.any(valid_mask):
            disp_float = disparity.to_pixels()
            valid_disp = disp_float[valid_mask]
            min_disp = np.min(valid_disp)
            max_disp = np.max(valid_disp)

            if max_disp > min_disp:
                disp_norm[valid_mask] = ((valid_disp - min_disp) /
                                         (max_disp - min_disp) * 255).astype(np.uint8)

        disparity_color = cv2.applyColorMap(disp_norm, cv2.COLORMAP_JET)
        disparity_color[~valid_mask] = [0, 0, 0]

        return disparity_color
