"""
Stereo Depth Pipeline

Runs rectification, disparity estimation, depth conversion and point cloud
reprojection on one stereo pair.
"""

import time
from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Union
import logging

import numpy as np

from .calibration.rectification_engine import RectificationEngine, resize_pair
from .data_models import (CalibrationPair, DepthMap, DisparityMap, PointCloud,
                          RectificationMaps)
from .disparity.disparity_estimator import DisparityEstimator
from .disparity.matching_utils import check_image_pair
from .disparity.parameters import MatcherParameters, StereoAlgorithm
from .exceptions import ConfigurationError, InvalidParameterError
from .reconstruction.depth_converter import DepthConverter
from .reconstruction.point_cloud_generator import PointCloudGenerator
from .utils.config_manager import ConfigManager


@dataclass
class PipelineResult:
    """Everything produced for one stereo pair."""
    left_image: np.ndarray
    right_image: np.ndarray
    disparity: DisparityMap
    parameters: MatcherParameters
    rectification_maps: Optional[RectificationMaps] = None
    depth: Optional[DepthMap] = None
    point_cloud: Optional[PointCloud] = None
    timings: Dict[str, float] = field(default_factory=dict)


class StereoDepthPipeline:
    """Integrated pipeline from an image pair to disparity, depth and points."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        self.rectification_engine = RectificationEngine(self.config)
        self.disparity_estimator = DisparityEstimator(self.config)
        self.depth_converter = DepthConverter(self.config)
        self.point_cloud_generator = PointCloudGenerator(self.config)

    def build_parameters(self,
                         algorithm: StereoAlgorithm,
                         block_size: Optional[int] = None,
                         num_disparities: Optional[int] = None) -> MatcherParameters:
        """Configured parameters of ``algorithm`` with caller overrides applied and validated."""
        params = self.disparity_estimator.default_parameters(algorithm)
        overrides = {k: v for k, v in (('block_size', block_size),
                                       ('num_disparities', num_disparities)) if v is not None}
        params = replace(params, **overrides)
        params.validate(algorithm)
        return params

    def process(self,
                left_image: np.ndarray,
                right_image: np.ndarray,
                calibration: Optional[CalibrationPair] = None,
                algorithm: Union[str, StereoAlgorithm, None] = None,
                block_size: Optional[int] = None,
                num_disparities: Optional[int] = None,
                scale: Optional[float] = None,
                compute_depth: bool = True,
                compute_point_cloud: Optional[bool] = None) -> PipelineResult:
        """
        Process one stereo pair.

        Args:
            left_image: Left camera image
            right_image: Right camera image
            calibration: Stereo calibration; None when the pair is already rectified
            algorithm: Matching algorithm; defaults to the configured one
            block_size: Matcher window override
            num_disparities: Search range override
            scale: Resize factor applied to both images (and intrinsics)
            compute_depth: Produce a depth map when focal length and baseline are known
            compute_point_cloud: Produce a point cloud; defaults to whenever calibration is given

        Returns:
            Pipeline result
        """
        algorithm = StereoAlgorithm.from_name(algorithm or self.config.get('stereo.algorithm', 'sgbm'))
        scale = float(scale if scale is not None else self.config.get('stereo.scale', 1.0))
        if compute_point_cloud is None:
            compute_point_cloud = calibration is not None

        # Everything input-driven is checked before the first pixel is touched
        if scale <= 0:
            raise InvalidParameterError(f"The scale factor must be a positive number, got {scale}")
        check_image_pair(left_image, right_image)
        if compute_point_cloud and calibration is None:
            raise ConfigurationError("Calibration is required to compute the point cloud")
        params = self.build_parameters(algorithm, block_size, num_disparities)

        timings = {}
        left, right = resize_pair(left_image, right_image, scale)
        height, width = left.shape[:2]

        maps = None
        if calibration is not None:
            start = time.perf_counter()
            maps = self.rectification_engine.compute_maps(calibration, (width, height), scale)
            left, right = self.rectification_engine.rectify_pair(left, right, maps)
            timings['rectification'] = time.perf_counter() - start

            if algorithm is StereoAlgorithm.BM:
                params = replace(params, roi_left=maps.roi_left, roi_right=maps.roi_right)

        start = time.perf_counter()
        disparity = self.disparity_estimator.estimate(left, right, algorithm, params)
        timings['disparity'] = time.perf_counter() - start
        self.logger.info(f"Time elapsed: {timings['disparity'] * 1000:.1f}ms")

        result = PipelineResult(
            left_image=left,
            right_image=right,
            disparity=disparity,
            parameters=self.disparity_estimator.get_estimator(algorithm).resolve_parameters(left, params),
            rectification_maps=maps,
            timings=timings
        )

        if compute_depth:
            focal_length, baseline = self._depth_geometry(calibration, maps, scale)
            if focal_length is not None and baseline is not None:
                result.depth = self.depth_converter.to_depth(disparity, focal_length, baseline)
            else:
                self.logger.warning("Focal length and baseline unknown, skipping depth conversion")

        if compute_point_cloud:
            result.point_cloud = self.point_cloud_generator.reproject(disparity, maps.Q_matrix)

        return result

    def _depth_geometry(self,
                        calibration: Optional[CalibrationPair],
                        maps: Optional[RectificationMaps],
                        scale: float = 1.0):
        """
        Focal length (pixels of the matched images) and baseline for depth conversion.

        Rectification maps already carry the scaled focal length. A configured
        focal length refers to the input images and follows the resize here.
        Baseline is a physical length and does not follow the image scale.
        """
        if calibration is not None and maps is not None:
            return maps.focal_length, calibration.baseline

        depth_config = self.config.get_depth_params()
        focal_length = depth_config.get('focal_length')
        if focal_length is not None:
            focal_length = float(focal_length) * scale
        return focal_length, depth_config.get('baseline')
