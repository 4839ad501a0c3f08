"""
Disparity to Depth Conversion

depth = focal_length * baseline / disparity for every pixel with a strictly
positive disparity; everything else receives the no-depth marker.
"""

import numpy as np
from typing import Optional, Union
import logging

from ..data_models import (DepthMap, DisparityMap, DISPARITY_SCALE,
                           UINT16_MAX_DEPTH, UINT16_NO_DEPTH)
from ..exceptions import InvalidParameterError, UnsupportedFormatError
from ..utils.config_manager import ConfigManager


class DepthConverter:
    """Converts fixed-point disparity maps into metric depth maps."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize depth converter.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        depth_config = self.config.get_depth_params()
        self.output_dtype = np.dtype(depth_config.get('output_dtype', 'uint16'))

        self.logger.info(f"Depth converter initialized: output_dtype={self.output_dtype}")

    def to_depth(self,
                 disparity: Union[DisparityMap, np.ndarray],
                 focal_length: float,
                 baseline: float) -> DepthMap:
        """
        Convert a disparity map to depth.

        Args:
            disparity: DisparityMap, or a raw int16 fixed-point array
            focal_length: Rectified focal length in pixels
            baseline: Distance between camera centers; sets the depth unit

        Returns:
            Depth map; pixels without a positive disparity hold no_depth_value
        """
        if focal_length <= 0 or baseline <= 0:
            raise InvalidParameterError(
                f"Focal length and baseline must be positive: f={focal_length}, b={baseline}")

        disparity_px, valid = self._disparity_in_pixels(disparity)
        valid &= disparity_px > 0

        depth_float = np.zeros(disparity_px.shape, dtype=np.float64)
        depth_float[valid] = (focal_length * baseline) / disparity_px[valid]

        if self.output_dtype == np.uint16:
            depth = np.full(disparity_px.shape, UINT16_NO_DEPTH, dtype=np.uint16)
            clamped = np.clip(np.rint(depth_float[valid]), 0, UINT16_MAX_DEPTH)
            depth[valid] = clamped.astype(np.uint16)
            no_depth_value = UINT16_NO_DEPTH

            saturated = int(np.count_nonzero(clamped == UINT16_MAX_DEPTH))
            if saturated:
                self.logger.debug(f"{saturated} depth values clamped to {UINT16_MAX_DEPTH}")
        else:
            depth = np.full(disparity_px.shape, np.nan, dtype=self.output_dtype)
            depth[valid] = depth_float[valid]
            no_depth_value = float('nan')

        self.logger.debug(f"Depth computed for {np.count_nonzero(valid)}/{valid.size} pixels")

        return DepthMap(depth=depth, valid_mask=valid, no_depth_value=no_depth_value)

    def _disparity_in_pixels(self, disparity: Union[DisparityMap, np.ndarray]):
        if isinstance(disparity, DisparityMap):
            data = disparity.data
            valid = disparity.usable_mask
        else:
            data = np.asarray(disparity)
            if data.dtype != np.int16:
                # 8-bit display images conflate "far" with "no match"
                raise UnsupportedFormatError(
                    f"Depth conversion expects 16-bit fixed-point disparity, got {data.dtype}")
            valid = data > 0

        if data.ndim != 2:
            raise UnsupportedFormatError(f"Disparity map must be single-channel, got shape {data.shape}")

        return data.astype(np.float64) / DISPARITY_SCALE, valid
