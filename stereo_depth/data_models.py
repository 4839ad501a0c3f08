"""
Data Models for Stereo Depth Pipeline

Defines all data structures handed between pipeline stages.
"""

from dataclasses import dataclass, field
from typing import Tuple, Optional
import numpy as np

from .exceptions import ConfigurationError, InvalidParameterError

# Disparity maps are stored in 1/16 pixel fixed point
DISPARITY_SCALE = 16

# Largest value a uint16 depth map may hold; 65535 is reserved for "no depth"
UINT16_NO_DEPTH = np.iinfo(np.uint16).max
UINT16_MAX_DEPTH = UINT16_NO_DEPTH - 1


def _readonly(array: np.ndarray, dtype=np.float64) -> np.ndarray:
    copy = np.array(array, dtype=dtype, copy=True)
    copy.flags.writeable = False
    return copy


@dataclass(frozen=True, eq=False)
class CameraIntrinsics:
    """Camera intrinsic matrix and lens distortion coefficients."""
    camera_matrix: np.ndarray  # 3x3 intrinsic matrix
    distortion_coeffs: np.ndarray  # 1-D distortion coefficients

    def __post_init__(self):
        camera_matrix = _readonly(self.camera_matrix)
        if camera_matrix.shape != (3, 3):
            raise ConfigurationError(f"Camera matrix must be 3x3, got {camera_matrix.shape}")

        object.__setattr__(self, 'camera_matrix', camera_matrix)
        object.__setattr__(self, 'distortion_coeffs', _readonly(self.distortion_coeffs).ravel())

        if self.fx <= 0 or self.fy <= 0:
            raise ConfigurationError(f"Focal lengths must be positive: fx={self.fx}, fy={self.fy}")

        if abs(np.linalg.det(camera_matrix)) < 1e-12:
            raise ConfigurationError("Camera matrix is singular")

    @property
    def fx(self) -> float:
        return float(self.camera_matrix[0, 0])

    @property
    def fy(self) -> float:
        return float(self.camera_matrix[1, 1])

    @property
    def cx(self) -> float:
        return float(self.camera_matrix[0, 2])

    @property
    def cy(self) -> float:
        return float(self.camera_matrix[1, 2])

    def scaled(self, scale: float) -> 'CameraIntrinsics':
        """
        Return intrinsics for an image resized by ``scale``.

        Focal lengths and principal point follow the image; distortion
        coefficients are dimensionless and stay as they are.
        """
        if scale <= 0:
            raise InvalidParameterError(f"Scale factor must be positive, got {scale}")

        camera_matrix = np.array(self.camera_matrix, copy=True)
        camera_matrix[:2, :] *= scale
        return CameraIntrinsics(camera_matrix, self.distortion_coeffs)


@dataclass(frozen=True, eq=False)
class StereoExtrinsics:
    """Rotation and translation from the left to the right camera."""
    rotation_matrix: np.ndarray  # 3x3 rotation between cameras
    translation_vector: np.ndarray  # 3x1 translation, baseline units

    def __post_init__(self):
        rotation = _readonly(self.rotation_matrix)
        translation = _readonly(self.translation_vector)

        if translation.size != 3:
            raise ConfigurationError(f"Translation vector must have 3 elements, got {translation.size}")
        translation = translation.reshape(3, 1)

        if rotation.shape != (3, 3):
            raise ConfigurationError(f"Rotation matrix must be 3x3, got {rotation.shape}")

        if not np.allclose(rotation @ rotation.T, np.eye(3), atol=1e-3):
            raise ConfigurationError("Rotation matrix is not orthonormal")

        det_r = np.linalg.det(rotation)
        if abs(det_r - 1.0) > 0.01:
            raise ConfigurationError(f"Invalid rotation matrix: det(R) = {det_r:.4f}")

        object.__setattr__(self, 'rotation_matrix', rotation)
        object.__setattr__(self, 'translation_vector', translation)

        if self.baseline <= 0:
            raise ConfigurationError("Translation vector is zero: stereo pair has no baseline")

    @property
    def baseline(self) -> float:
        """Distance between camera centers."""
        return float(np.linalg.norm(self.translation_vector))


@dataclass(frozen=True, eq=False)
class CalibrationPair:
    """Complete stereo calibration, read-only for the lifetime of a run."""
    left: CameraIntrinsics
    right: CameraIntrinsics
    extrinsics: StereoExtrinsics

    @property
    def baseline(self) -> float:
        return self.extrinsics.baseline

    def scaled(self, scale: float) -> 'CalibrationPair':
        """Scale both intrinsics; the baseline is a physical length and is kept."""
        if scale == 1.0:
            return self
        return CalibrationPair(self.left.scaled(scale), self.right.scaled(scale), self.extrinsics)

    @classmethod
    def from_matrices(cls,
                      M1: np.ndarray, D1: np.ndarray,
                      M2: np.ndarray, D2: np.ndarray,
                      R: np.ndarray, T: np.ndarray) -> 'CalibrationPair':
        """Build a calibration pair from the named matrices of a calibration file."""
        return cls(
            left=CameraIntrinsics(M1, D1),
            right=CameraIntrinsics(M2, D2),
            extrinsics=StereoExtrinsics(R, T)
        )


@dataclass
class RectificationMaps:
    """Stereo rectification mapping data."""
    left_map_x: np.ndarray
    left_map_y: np.ndarray
    right_map_x: np.ndarray
    right_map_y: np.ndarray
    roi_left: Tuple[int, int, int, int]  # (x, y, width, height)
    roi_right: Tuple[int, int, int, int]
    R1: np.ndarray
    R2: np.ndarray
    P1: np.ndarray
    P2: np.ndarray
    Q_matrix: np.ndarray  # 4x4 reprojection matrix
    image_size: Tuple[int, int]  # (width, height)

    @property
    def focal_length(self) -> float:
        """Focal length shared by both rectified views."""
        return float(self.P1[0, 0])


@dataclass
class DisparityMap:
    """Fixed-point disparity map with an explicit invalid sentinel."""
    data: np.ndarray  # int16, 1/16 pixel units
    min_disparity: int
    num_disparities: int
    algorithm: str = ''

    @property
    def invalid_value(self) -> int:
        """Negative value lying outside every legitimate disparity."""
        return invalid_disparity_value(self.min_disparity)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    @property
    def valid_mask(self) -> np.ndarray:
        """
        Pixels the matcher accepted.

        A disparity of exactly 0 is a legitimate match (a point at infinity)
        and counts as valid here, although it carries no finite depth. See
        ``usable_mask`` for the pixels depth and point cloud stages keep.
        """
        return self.data != self.invalid_value

    @property
    def usable_mask(self) -> np.ndarray:
        """Valid pixels with a non-zero disparity, i.e. a finite distance."""
        return self.valid_mask & (self.data != 0)

    @property
    def valid_ratio(self) -> float:
        """Fraction of valid pixels, zero disparity included."""
        if self.data.size == 0:
            return 0.0
        return float(np.count_nonzero(self.valid_mask)) / self.data.size

    @property
    def usable_ratio(self) -> float:
        if self.data.size == 0:
            return 0.0
        return float(np.count_nonzero(self.usable_mask)) / self.data.size

    def to_pixels(self) -> np.ndarray:
        """Disparity in pixel units; invalid pixels become NaN."""
        pixels = self.data.astype(np.float32) / DISPARITY_SCALE
        pixels[~self.valid_mask] = np.nan
        return pixels


def invalid_disparity_value(min_disparity: int) -> int:
    """Sentinel for unmatched pixels given the lower bound of the search range."""
    return (min(min_disparity, 0) - 1) * DISPARITY_SCALE


@dataclass
class DepthMap:
    """Metric depth per pixel with a reserved no-depth marker."""
    depth: np.ndarray
    valid_mask: np.ndarray
    no_depth_value: float
    units: str = 'baseline units'

    @property
    def shape(self) -> Tuple[int, int]:
        return self.depth.shape


@dataclass
class PointCloud:
    """3D points in scan order together with the pixels they came from."""
    points: np.ndarray  # Nx3 float32
    pixel_coords: np.ndarray = field(default_factory=lambda: np.empty((0, 2), dtype=np.int32))  # Nx2 (row, col)

    def __len__(self) -> int:
        return len(self.points)
