"""
Tests for calibration file loading and the calibration data models
"""

import pytest
import numpy as np
import cv2

from stereo_depth.calibration.calibration_loader import load_calibration, save_calibration
from stereo_depth.data_models import CameraIntrinsics, StereoExtrinsics, CalibrationPair
from stereo_depth.exceptions import ConfigurationError, InvalidParameterError


class TestCalibrationLoader:
    """Test suite for FileStorage calibration files."""

    def test_save_and_load(self, tmp_path, distorted_calibration):
        intrinsics = tmp_path / "intrinsics.yml"
        extrinsics = tmp_path / "extrinsics.yml"

        save_calibration(distorted_calibration, intrinsics, extrinsics)
        loaded = load_calibration(intrinsics, extrinsics)

        np.testing.assert_allclose(loaded.left.camera_matrix, distorted_calibration.left.camera_matrix)
        np.testing.assert_allclose(loaded.right.distortion_coeffs, distorted_calibration.right.distortion_coeffs)
        np.testing.assert_allclose(loaded.extrinsics.rotation_matrix,
                                   distorted_calibration.extrinsics.rotation_matrix)
        assert loaded.baseline == pytest.approx(distorted_calibration.baseline)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError, match="Failed to open file"):
            load_calibration(tmp_path / "missing.yml", tmp_path / "also_missing.yml")

    def test_missing_entry(self, tmp_path, sample_calibration):
        intrinsics = tmp_path / "intrinsics.yml"
        extrinsics = tmp_path / "extrinsics.yml"
        save_calibration(sample_calibration, intrinsics, extrinsics)

        fs = cv2.FileStorage(str(extrinsics), cv2.FILE_STORAGE_WRITE)
        fs.write('R', np.eye(3))
        fs.release()

        with pytest.raises(ConfigurationError, match="'T'"):
            load_calibration(intrinsics, extrinsics)

    def test_zero_baseline_in_file(self, tmp_path, sample_calibration):
        intrinsics = tmp_path / "intrinsics.yml"
        extrinsics = tmp_path / "extrinsics.yml"
        save_calibration(sample_calibration, intrinsics, extrinsics)

        fs = cv2.FileStorage(str(extrinsics), cv2.FILE_STORAGE_WRITE)
        fs.write('R', np.eye(3))
        fs.write('T', np.zeros((3, 1)))
        fs.release()

        with pytest.raises(ConfigurationError, match="no baseline"):
            load_calibration(intrinsics, extrinsics)


class TestCalibrationModels:
    """Validation performed when calibration objects are built."""

    def test_intrinsics_properties(self, sample_camera_params):
        assert sample_camera_params.fx == 700.0
        assert sample_camera_params.cy == 239.5
        assert sample_camera_params.distortion_coeffs.shape == (5,)

    def test_arrays_are_read_only(self, sample_calibration):
        with pytest.raises(ValueError):
            sample_calibration.left.camera_matrix[0, 0] = 1.0

    def test_inputs_are_copied(self):
        matrix = np.array([[500.0, 0, 10], [0, 500.0, 10], [0, 0, 1]])
        intrinsics = CameraIntrinsics(matrix, np.zeros(4))

        matrix[0, 0] = 1.0
        assert intrinsics.fx == 500.0

    @pytest.mark.parametrize("matrix", [
        [[0.0, 0, 10], [0, 500.0, 10], [0, 0, 1]],
        [[500.0, 0, 10], [0, -1.0, 10], [0, 0, 1]],
        [[500.0, 0, 10], [0, 500.0, 10], [0, 0, 0]],
    ])
    def test_invalid_camera_matrix(self, matrix):
        with pytest.raises(ConfigurationError):
            CameraIntrinsics(np.array(matrix), np.zeros(5))

    def test_camera_matrix_shape(self):
        with pytest.raises(ConfigurationError, match="3x3"):
            CameraIntrinsics(np.eye(4), np.zeros(5))

    def test_non_orthonormal_rotation(self):
        with pytest.raises(ConfigurationError, match="orthonormal"):
            StereoExtrinsics(np.diag([1.0, 2.0, 1.0]), np.array([-100.0, 0, 0]))

    def test_reflection_is_rejected(self):
        with pytest.raises(ConfigurationError, match="det"):
            StereoExtrinsics(np.diag([1.0, 1.0, -1.0]), np.array([-100.0, 0, 0]))

    def test_zero_baseline(self):
        with pytest.raises(ConfigurationError, match="no baseline"):
            StereoExtrinsics(np.eye(3), np.zeros(3))

    def test_scaled_calibration(self, sample_calibration):
        scaled = sample_calibration.scaled(0.5)

        assert scaled.left.fx == pytest.approx(350.0)
        assert scaled.right.cx == pytest.approx(159.75)
        assert scaled.left.camera_matrix[2, 2] == 1.0
        assert scaled.baseline == sample_calibration.baseline
        assert sample_calibration.scaled(1.0) is sample_calibration

    def test_invalid_scale(self, sample_camera_params):
        with pytest.raises(InvalidParameterError):
            sample_camera_params.scaled(0.0)

    def test_from_matrices(self):
        K = np.array([[600.0, 0, 320], [0, 600.0, 240], [0, 0, 1]])
        calibration = CalibrationPair.from_matrices(K, np.zeros(5), K, np.zeros(5), np.eye(3), [[-0.12], [0], [0]])

        assert calibration.baseline == pytest.approx(0.12)
        assert calibration.extrinsics.translation_vector.shape == (3, 1)
