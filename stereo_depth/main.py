"""
Main entry point for the Stereo Depth Pipeline

Converts a left/right image pair into a disparity image, an optional 16-bit
depth image and an optional point cloud.
"""

import argparse
import logging
import sys
from pathlib import Path

import cv2

from stereo_depth.calibration.calibration_loader import load_calibration
from stereo_depth.disparity.parameters import ALGORITHM_ALIASES, StereoAlgorithm
from stereo_depth.exceptions import StereoDepthError
from stereo_depth.pipeline import StereoDepthPipeline
from stereo_depth.utils.config_manager import ConfigManager
from stereo_depth.utils.exporter import save_depth_image, save_disparity_image, save_point_cloud


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Stereo matching: convert left and right images into disparity, depth and point clouds"
    )

    parser.add_argument("left_image", type=str, help="Left camera image")
    parser.add_argument("right_image", type=str, help="Right camera image")

    parser.add_argument(
        "--algorithm",
        type=str.lower,
        choices=sorted(ALGORITHM_ALIASES),
        help="Stereo matching algorithm (default from configuration)"
    )

    parser.add_argument("--blocksize", type=int, help="Matcher block size (odd, >= 5)")
    parser.add_argument("--max-disparity", type=int, help="Disparity search range (multiple of 16)")
    parser.add_argument("--scale", type=float, help="Resize factor applied to both images")
    parser.add_argument("-i", "--intrinsics", type=str, help="Intrinsic parameters file (M1, D1, M2, D2)")
    parser.add_argument("-e", "--extrinsics", type=str, help="Extrinsic parameters file (R, T)")
    parser.add_argument("-o", "--output", type=str, help="Output disparity image")
    parser.add_argument("-p", "--point-cloud", type=str, help="Output point cloud (.xyz text, .ply or .pcd)")
    parser.add_argument("--depth", type=str, help="Output 16-bit depth image")
    parser.add_argument("--config", type=str, help="Path to configuration file")

    parser.add_argument(
        "--log-level",
        type=str.upper,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity"
    )

    return parser


def main(argv=None):
    """Main entry point for the stereo depth pipeline."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger = logging.getLogger("stereo_depth")

    if args.scale is not None and args.scale <= 0:
        parser.error("The scale factor (--scale) must be a positive floating-point number")

    if args.blocksize is not None and (args.blocksize < 1 or args.blocksize % 2 != 1):
        parser.error("The block size (--blocksize) must be a positive odd number")

    if bool(args.intrinsics) ^ bool(args.extrinsics):
        parser.error("Either both intrinsic and extrinsic parameters must be specified, "
                     "or none of them (when the stereo pair is already rectified)")

    if args.point_cloud and not args.extrinsics:
        parser.error("Extrinsic and intrinsic parameters must be specified to compute the point cloud")

    # Load configuration
    try:
        config = ConfigManager(args.config)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading configuration: {e}")
        return 1

    algorithm = StereoAlgorithm.from_name(args.algorithm or config.get('stereo.algorithm', 'sgbm'))
    color_mode = cv2.IMREAD_GRAYSCALE if algorithm is StereoAlgorithm.BM else cv2.IMREAD_COLOR

    left = cv2.imread(args.left_image, color_mode)
    if left is None:
        logger.error(f"Could not load the first input image file {args.left_image}")
        return 1

    right = cv2.imread(args.right_image, color_mode)
    if right is None:
        logger.error(f"Could not load the second input image file {args.right_image}")
        return 1

    try:
        calibration = None
        if args.intrinsics:
            calibration = load_calibration(args.intrinsics, args.extrinsics)

        pipeline = StereoDepthPipeline(config)
        result = pipeline.process(
            left, right,
            calibration=calibration,
            algorithm=algorithm,
            block_size=args.blocksize,
            num_disparities=args.max_disparity,
            scale=args.scale,
            compute_depth=bool(args.depth),
            compute_point_cloud=bool(args.point_cloud)
        )

        if args.output:
            save_disparity_image(args.output, result.disparity)

        if args.depth:
            if result.depth is None:
                logger.error("Depth requested but focal length and baseline are unknown")
                return 1
            save_depth_image(args.depth, result.depth)

        if args.point_cloud:
            logger.info("Storing the point cloud...")
            save_point_cloud(Path(args.point_cloud), result.point_cloud)

    except (StereoDepthError, OSError) as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
