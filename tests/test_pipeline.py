"""
End-to-end tests for the stereo depth pipeline
"""

import pytest
import numpy as np

from stereo_depth.data_models import UINT16_NO_DEPTH
from stereo_depth.disparity.parameters import StereoAlgorithm
from stereo_depth.exceptions import (ConfigurationError, DimensionMismatchError,
                                     InvalidParameterError, UnsupportedFormatError)
from stereo_depth.pipeline import StereoDepthPipeline

from synthetic import make_checkerboard, shift_pair, interior


# 700 px focal length, 150 mm baseline and 16 px disparity
EXPECTED_DEPTH = 700.0 * 150.0 / 16.0


class TestStereoDepthPipeline:
    """Integration test suite for the full pipeline."""

    @pytest.fixture
    def pipeline(self, config_manager):
        return StereoDepthPipeline(config_manager)

    @pytest.fixture
    def vga_pair(self):
        return shift_pair(make_checkerboard(480, 640, seed=11), 16)

    def test_calibrated_block_matching(self, pipeline, sample_calibration, vga_pair):
        left, right = vga_pair

        result = pipeline.process(left, right, calibration=sample_calibration,
                                  algorithm='bm', num_disparities=64)

        assert result.rectification_maps is not None
        assert result.parameters.roi_left == result.rectification_maps.roi_left
        assert result.parameters.num_disparities == 64
        assert set(result.timings) == {'rectification', 'disparity'}

        core = interior(result.disparity.data, 64, 12)
        valid = core[core != result.disparity.invalid_value]
        assert np.median(valid) / 16.0 == pytest.approx(16, abs=0.5)

        depth_core = interior(result.depth.depth, 64, 12)
        measured = depth_core[depth_core != UINT16_NO_DEPTH]
        assert np.median(measured) == pytest.approx(EXPECTED_DEPTH, rel=0.03)

        cloud = result.point_cloud
        assert len(cloud) > 0
        assert np.all(np.abs(cloud.points[:, 2]) < 10000.0)
        assert np.median(cloud.points[:, 2]) == pytest.approx(EXPECTED_DEPTH, rel=0.03)
        # Scan order
        flat = cloud.pixel_coords[:, 0] * 640 + cloud.pixel_coords[:, 1]
        assert np.all(np.diff(flat) > 0)

    def test_scaled_input_keeps_metric_depth(self, pipeline, sample_calibration, vga_pair):
        left, right = vga_pair

        result = pipeline.process(left, right, calibration=sample_calibration,
                                  algorithm='sgbm', num_disparities=32, scale=0.5)

        assert result.disparity.shape == (240, 320)
        assert result.rectification_maps.focal_length == pytest.approx(350.0, rel=1e-6)

        depth_core = interior(result.depth.depth, 32, 10)
        measured = depth_core[depth_core != UINT16_NO_DEPTH]
        assert np.median(measured) == pytest.approx(EXPECTED_DEPTH, rel=0.05)

    def test_uncalibrated_pair_without_geometry(self, pipeline, checkerboard_pair):
        left, right = checkerboard_pair

        result = pipeline.process(left, right, algorithm='sgbm', num_disparities=32)

        assert result.rectification_maps is None
        assert result.depth is None
        assert result.point_cloud is None
        assert 'rectification' not in result.timings

    def test_uncalibrated_pair_with_configured_geometry(self, config_manager, checkerboard_pair):
        config_manager.set('depth.focal_length', 400.0)
        config_manager.set('depth.baseline', 0.2)
        pipeline = StereoDepthPipeline(config_manager)
        left, right = checkerboard_pair

        result = pipeline.process(left, right, algorithm='bm', num_disparities=32)

        core = interior(result.depth.depth, 32, 10)
        measured = core[core != UINT16_NO_DEPTH]
        # 400 * 0.2 / 8 rounds to 10
        assert np.median(measured) == 10

    def test_configured_focal_length_follows_scale(self, config_manager, vga_pair):
        config_manager.set('depth.focal_length', 400.0)
        config_manager.set('depth.baseline', 0.2)
        config_manager.set('depth.output_dtype', 'float32')
        pipeline = StereoDepthPipeline(config_manager)
        left, right = vga_pair

        full = pipeline.process(left, right, algorithm='bm', num_disparities=64)
        half = pipeline.process(left, right, algorithm='bm', num_disparities=32, scale=0.5)

        full_core = interior(full.depth.depth, 64, 12)
        half_core = interior(half.depth.depth, 32, 10)
        full_depth = np.median(full_core[np.isfinite(full_core)])
        half_depth = np.median(half_core[np.isfinite(half_core)])

        # 400 * 0.2 / 16 at full size, 200 * 0.2 / 8 at half size
        assert full_depth == pytest.approx(5.0, rel=0.05)
        assert half_depth == pytest.approx(full_depth, rel=0.05)

    def test_configured_algorithm_is_default(self, config_manager, checkerboard_pair):
        config_manager.set('stereo.algorithm', 'bm')
        config_manager.set('stereo.num_disparities', 32)
        left, right = checkerboard_pair

        result = StereoDepthPipeline(config_manager).process(left, right)

        assert result.disparity.algorithm == StereoAlgorithm.BM.value

    def test_point_cloud_requires_calibration(self, pipeline, checkerboard_pair):
        left, right = checkerboard_pair

        with pytest.raises(ConfigurationError):
            pipeline.process(left, right, compute_point_cloud=True)

    def test_dimension_mismatch(self, pipeline):
        with pytest.raises(DimensionMismatchError):
            pipeline.process(np.zeros((100, 160), np.uint8), np.zeros((100, 150), np.uint8))

    @pytest.mark.parametrize("dtype", [np.uint16, np.float32])
    def test_non_8bit_pair_rejected_before_rectification(self, pipeline, sample_calibration,
                                                         monkeypatch, dtype):
        def fail(*args, **kwargs):
            raise AssertionError("rectification must not run for unsupported input")

        monkeypatch.setattr(pipeline.rectification_engine, 'compute_maps', fail)
        left = np.zeros((480, 640), dtype=dtype)

        with pytest.raises(UnsupportedFormatError):
            pipeline.process(left, left.copy(), calibration=sample_calibration, scale=0.5)

    @pytest.mark.parametrize("overrides", [
        {'block_size': 4},
        {'block_size': 3},
        {'num_disparities': 24},
        {'scale': 0.0},
        {'algorithm': 'dynamic-programming'},
    ])
    def test_invalid_parameters(self, pipeline, checkerboard_pair, overrides):
        left, right = checkerboard_pair

        with pytest.raises(InvalidParameterError):
            pipeline.process(left, right, **overrides)

    def test_build_parameters(self, pipeline):
        params = pipeline.build_parameters(StereoAlgorithm.SGBM, block_size=7, num_disparities=48)

        assert params.block_size == 7
        assert params.num_disparities == 48
        assert params.P1 is None
