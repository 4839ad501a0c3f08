"""
Calibration File Loader

Reads the intrinsic (M1, D1, M2, D2) and extrinsic (R, T) matrices written by
OpenCV's FileStorage and builds a CalibrationPair.
"""

import cv2
import numpy as np
from pathlib import Path
from typing import Dict, Sequence, Union
import logging

from ..data_models import CalibrationPair
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

INTRINSIC_KEYS = ('M1', 'D1', 'M2', 'D2')
EXTRINSIC_KEYS = ('R', 'T')


def _read_matrices(path: Union[str, Path], keys: Sequence[str]) -> Dict[str, np.ndarray]:
    fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_READ)
    if not fs.isOpened():
        raise IOError(f"Failed to open file {path}")

    try:
        matrices = {}
        for key in keys:
            node = fs.getNode(key)
            matrix = None if node.empty() else node.mat()
            if matrix is None:
                raise ConfigurationError(f"Calibration file {path} has no '{key}' entry")
            matrices[key] = matrix
    finally:
        fs.release()

    return matrices


def load_calibration(intrinsic_path: Union[str, Path],
                     extrinsic_path: Union[str, Path]) -> CalibrationPair:
    """
    Load a stereo calibration from a pair of FileStorage documents.

    Args:
        intrinsic_path: File holding M1, D1, M2, D2
        extrinsic_path: File holding R, T

    Returns:
        Validated calibration pair
    """
    intrinsics = _read_matrices(intrinsic_path, INTRINSIC_KEYS)
    extrinsics = _read_matrices(extrinsic_path, EXTRINSIC_KEYS)

    calibration = CalibrationPair.from_matrices(**intrinsics, **extrinsics)
    logger.info(f"Loaded calibration from {intrinsic_path} and {extrinsic_path}: "
                f"baseline={calibration.baseline:.4f}")
    return calibration


def save_calibration(calibration: CalibrationPair,
                     intrinsic_path: Union[str, Path],
                     extrinsic_path: Union[str, Path]) -> None:
    """Write a calibration pair in the layout read by load_calibration."""
    values = {
        'M1': calibration.left.camera_matrix,
        'D1': calibration.left.distortion_coeffs.reshape(1, -1),
        'M2': calibration.right.camera_matrix,
        'D2': calibration.right.distortion_coeffs.reshape(1, -1),
    }
    _write_matrices(intrinsic_path, values)
    _write_matrices(extrinsic_path, {
        'R': calibration.extrinsics.rotation_matrix,
        'T': calibration.extrinsics.translation_vector,
    })


def _write_matrices(path: Union[str, Path], matrices: Dict[str, np.ndarray]) -> None:
    fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_WRITE)
    if not fs.isOpened():
        raise IOError(f"Failed to open file {path}")

    try:
        for key, matrix in matrices.items():
            fs.write(key, np.array(matrix, dtype=np.float64))
    finally:
        fs.release()
