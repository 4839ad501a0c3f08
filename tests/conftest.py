"""
Pytest configuration and fixtures for stereo depth tests.
"""

import pytest
import numpy as np

from stereo_depth.data_models import CameraIntrinsics, StereoExtrinsics, CalibrationPair
from stereo_depth.utils.config_manager import ConfigManager

from synthetic import make_checkerboard, shift_pair


@pytest.fixture
def config_manager():
    """Fixture providing a configuration manager instance."""
    return ConfigManager()


@pytest.fixture
def sample_camera_params():
    """Fixture providing sample camera intrinsics for a 640x480 sensor."""
    camera_matrix = np.array([
        [700.0, 0, 319.5],
        [0, 700.0, 239.5],
        [0, 0, 1]
    ])

    return CameraIntrinsics(camera_matrix=camera_matrix, distortion_coeffs=np.zeros(5))


@pytest.fixture
def sample_calibration(sample_camera_params):
    """Fixture providing an ideal horizontal stereo rig with a 150 mm baseline."""
    extrinsics = StereoExtrinsics(
        rotation_matrix=np.eye(3),
        translation_vector=np.array([-150.0, 0.0, 0.0])
    )

    return CalibrationPair(left=sample_camera_params, right=sample_camera_params, extrinsics=extrinsics)


@pytest.fixture
def distorted_calibration():
    """Fixture providing a rig with lens distortion and a small relative rotation."""
    left = CameraIntrinsics(
        np.array([[690.0, 0, 322.0], [0, 688.0, 236.0], [0, 0, 1]]),
        np.array([-0.12, 0.05, 0.001, -0.0005, 0.0])
    )
    right = CameraIntrinsics(
        np.array([[695.0, 0, 317.0], [0, 694.0, 242.0], [0, 0, 1]]),
        np.array([-0.10, 0.04, -0.0008, 0.0006, 0.0])
    )

    angle = np.radians(1.5)
    rotation = np.array([
        [np.cos(angle), 0, np.sin(angle)],
        [0, 1, 0],
        [-np.sin(angle), 0, np.cos(angle)]
    ])

    return CalibrationPair(left, right, StereoExtrinsics(rotation, np.array([-120.0, 1.5, 0.8])))


@pytest.fixture
def checkerboard_pair():
    """Fixture providing a 320x240 textured pair with a uniform 8 pixel disparity."""
    left = make_checkerboard(240, 320)
    return shift_pair(left, 8)
