"""
Matcher Parameters

Shared parameter contract for the block matching and semi-global matchers,
with eager validation and the defaults derived from image size and channel
count.
"""

import numbers
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple, Dict, Any

from ..exceptions import InvalidParameterError

Rect = Tuple[int, int, int, int]

MIN_BLOCK_SIZE = 5
MAX_BM_BLOCK_SIZE = 255

# OpenCV rejects floats for all of these
INTEGER_FIELDS = ('block_size', 'num_disparities', 'min_disparity', 'uniqueness_ratio',
                  'speckle_window_size', 'speckle_range', 'disp12_max_diff',
                  'pre_filter_cap', 'texture_threshold', 'P1', 'P2')
OPTIONAL_FIELDS = ('num_disparities', 'P1', 'P2')


class StereoAlgorithm(Enum):
    """Available matching algorithms."""
    BM = 'bm'
    SGBM = 'sgbm'
    SGBM_FULL = 'hh'
    SGBM_3WAY = 'sgbm3way'

    @classmethod
    def from_name(cls, name) -> 'StereoAlgorithm':
        """Resolve an algorithm from its short name or descriptive alias."""
        if isinstance(name, cls):
            return name

        key = str(name).strip().lower()
        if key in ALGORITHM_ALIASES:
            return ALGORITHM_ALIASES[key]

        raise InvalidParameterError(f"Unknown stereo algorithm '{name}'")

    @property
    def is_semi_global(self) -> bool:
        return self is not StereoAlgorithm.BM


ALGORITHM_ALIASES = {
    'bm': StereoAlgorithm.BM,
    'block-matching': StereoAlgorithm.BM,
    'sgbm': StereoAlgorithm.SGBM,
    'semi-global': StereoAlgorithm.SGBM,
    'hh': StereoAlgorithm.SGBM_FULL,
    'semi-global-full': StereoAlgorithm.SGBM_FULL,
    'sgbm3way': StereoAlgorithm.SGBM_3WAY,
    'semi-global-3way': StereoAlgorithm.SGBM_3WAY,
}


def default_num_disparities(image_width: int) -> int:
    """Search range covering roughly an eighth of the image width, rounded to 16."""
    return ((image_width // 8) + 15) & -16


@dataclass
class MatcherParameters:
    """Parameters shared by both matcher families."""
    block_size: int = 9
    num_disparities: Optional[int] = None
    min_disparity: int = 0
    uniqueness_ratio: int = 10
    speckle_window_size: int = 100
    speckle_range: int = 32
    disp12_max_diff: int = 1
    pre_filter_cap: int = 31
    texture_threshold: int = 10  # block matching only
    P1: Optional[int] = None  # semi-global only
    P2: Optional[int] = None  # semi-global only
    roi_left: Optional[Rect] = None  # block matching only
    roi_right: Optional[Rect] = None

    @classmethod
    def from_config(cls, section: Dict[str, Any], **overrides) -> 'MatcherParameters':
        """Build parameters from a config section; ``None`` overrides are ignored."""
        known = cls.__dataclass_fields__.keys()
        values = {k: v for k, v in section.items() if k in known and v is not None}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def validate(self, algorithm: StereoAlgorithm = StereoAlgorithm.SGBM) -> None:
        """
        Check every parameter before any computation starts.

        Raises:
            InvalidParameterError: On the first inadmissible value
        """
        for name in INTEGER_FIELDS:
            value = getattr(self, name)
            if value is None and name in OPTIONAL_FIELDS:
                continue
            if not isinstance(value, numbers.Integral) or isinstance(value, bool):
                raise InvalidParameterError(f"{name} must be an integer, got {value!r}")

        if self.block_size < MIN_BLOCK_SIZE or self.block_size % 2 != 1:
            raise InvalidParameterError(
                f"block_size must be a positive odd number >= {MIN_BLOCK_SIZE}, got {self.block_size}")

        if algorithm is StereoAlgorithm.BM and self.block_size > MAX_BM_BLOCK_SIZE:
            raise InvalidParameterError(
                f"block_size must not exceed {MAX_BM_BLOCK_SIZE} for block matching, got {self.block_size}")

        if self.num_disparities is not None:
            if self.num_disparities <= 0 or self.num_disparities % 16 != 0:
                raise InvalidParameterError(
                    f"num_disparities must be a positive multiple of 16, got {self.num_disparities}")

        if self.uniqueness_ratio < 0:
            raise InvalidParameterError("uniqueness_ratio must be non-negative")

        if self.speckle_window_size < 0 or self.speckle_range < 0:
            raise InvalidParameterError("speckle_window_size and speckle_range must be non-negative")

        if algorithm is StereoAlgorithm.BM:
            if not 1 <= self.pre_filter_cap <= 63:
                raise InvalidParameterError(
                    f"pre_filter_cap must lie in [1, 63] for block matching, got {self.pre_filter_cap}")
            if self.texture_threshold < 0:
                raise InvalidParameterError("texture_threshold must be non-negative")
        elif self.pre_filter_cap < 0:
            raise InvalidParameterError("pre_filter_cap must be non-negative")

        if self.P1 is not None and self.P1 <= 0:
            raise InvalidParameterError(f"P1 must be positive, got {self.P1}")

        if self.P1 is not None and self.P2 is not None and self.P2 <= self.P1:
            raise InvalidParameterError(f"P2 must be greater than P1, got P1={self.P1}, P2={self.P2}")

    def resolve(self,
                image_width: int,
                channels: int = 1,
                algorithm: StereoAlgorithm = StereoAlgorithm.SGBM) -> 'MatcherParameters':
        """
        Return a validated copy with every derived default filled in.

        Args:
            image_width: Width of the rectified images
            channels: Channel count of the images handed to the matcher
            algorithm: Algorithm the parameters will drive
        """
        self.validate(algorithm)

        num_disparities = self.num_disparities
        if num_disparities is None:
            num_disparities = default_num_disparities(image_width)
            if num_disparities <= 0:
                raise InvalidParameterError(
                    f"Image width {image_width} yields an empty disparity search range")

        area = self.block_size * self.block_size
        P1 = self.P1 if self.P1 is not None else 8 * channels * area
        P2 = self.P2 if self.P2 is not None else 32 * channels * area
        if P2 <= P1:
            raise InvalidParameterError(f"P2 must be greater than P1, got P1={P1}, P2={P2}")

        return replace(self, num_disparities=num_disparities, P1=P1, P2=P2)

    @property
    def max_disparity(self) -> int:
        """Exclusive upper bound of the search range."""
        if self.num_disparities is None:
            raise InvalidParameterError("num_disparities is not resolved yet")
        return self.min_disparity + self.num_disparities
