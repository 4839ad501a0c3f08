"""
Shared helpers for the disparity matchers: input checks, invalid-pixel
normalization and speckle filtering.
"""

import cv2
import numpy as np
from typing import Tuple

from ..data_models import DISPARITY_SCALE, invalid_disparity_value
from ..exceptions import DimensionMismatchError, UnsupportedFormatError
from .parameters import MatcherParameters


def check_image_pair(left_image: np.ndarray, right_image: np.ndarray) -> None:
    """Both images must share shape and pixel type."""
    if left_image.shape != right_image.shape:
        raise DimensionMismatchError(
            f"Left and right images must have same dimensions: {left_image.shape} vs {right_image.shape}")

    if left_image.dtype != right_image.dtype:
        raise UnsupportedFormatError(
            f"Left and right images must share a pixel type: {left_image.dtype} vs {right_image.dtype}")

    if left_image.ndim not in (2, 3) or left_image.size == 0:
        raise UnsupportedFormatError(f"Expected a 2-D grayscale or 3-D color image, got shape {left_image.shape}")

    if left_image.dtype != np.uint8:
        raise UnsupportedFormatError(f"Matchers require 8-bit images, got {left_image.dtype}")


def channel_count(image: np.ndarray) -> int:
    return 1 if image.ndim == 2 else image.shape[2]


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Single-channel view of an 8-bit image."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 1:
        return np.ascontiguousarray(image[:, :, 0])
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def normalize_invalid(raw: np.ndarray, params: MatcherParameters) -> np.ndarray:
    """
    Rewrite every out-of-range value of a raw matcher output to the sentinel.

    Args:
        raw: Matcher output (16-bit fixed point)
        params: Resolved parameters the matcher ran with

    Returns:
        int16 disparity where all unmatched pixels hold the invalid sentinel
    """
    disparity = raw.astype(np.int16, copy=True)
    low = params.min_disparity * DISPARITY_SCALE
    high = params.max_disparity * DISPARITY_SCALE

    out_of_range = (disparity < low) | (disparity >= high)
    disparity[out_of_range] = invalid_disparity_value(params.min_disparity)
    return disparity


def filter_speckles(disparity: np.ndarray, params: MatcherParameters) -> Tuple[np.ndarray, int]:
    """
    Invalidate connected regions smaller than ``speckle_window_size``.

    Neighbouring pixels belong to the same region when their disparities
    differ by at most ``speckle_range`` pixels.

    Returns:
        Tuple of (filtered disparity, number of pixels removed)
    """
    filtered = np.ascontiguousarray(disparity, dtype=np.int16).copy()
    if params.speckle_window_size <= 0 or params.speckle_range <= 0:
        return filtered, 0

    invalid_value = invalid_disparity_value(params.min_disparity)
    before = np.count_nonzero(filtered != invalid_value)

    filtered, _ = cv2.filterSpeckles(filtered, invalid_value,
                                     params.speckle_window_size,
                                     params.speckle_range * DISPARITY_SCALE)

    removed = before - np.count_nonzero(filtered != invalid_value)
    return filtered, int(removed)
