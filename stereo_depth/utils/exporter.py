"""
Result Exporters

Writes disparity visualizations, 16-bit depth images and point clouds.
"""

import cv2
import numpy as np
import open3d as o3d
from pathlib import Path
from typing import Union
import logging

from ..data_models import DepthMap, DisparityMap, PointCloud, DISPARITY_SCALE
from ..exceptions import UnsupportedFormatError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

OPEN3D_SUFFIXES = ('.ply', '.pcd')


def disparity_to_display(disparity: DisparityMap) -> np.ndarray:
    """
    Scale a disparity map into the full 8-bit range.

    Each pixel becomes d * 255 / num_disparities (d in pixels), saturated to
    [0, 255]; the negative invalid sentinel therefore maps to 0.
    """
    scale = 255.0 / (disparity.num_disparities * DISPARITY_SCALE)
    scaled = np.rint(disparity.data.astype(np.float32) * scale)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def save_disparity_image(path: PathLike, disparity: DisparityMap) -> None:
    """Write the 8-bit disparity visualization."""
    _imwrite(path, disparity_to_display(disparity))


def save_depth_image(path: PathLike, depth: DepthMap) -> None:
    """Write a uint16 depth map as a single-channel 16-bit image."""
    if depth.depth.dtype != np.uint16:
        raise UnsupportedFormatError(f"Depth images are written as uint16, got {depth.depth.dtype}")
    _imwrite(path, depth.depth)


def save_point_cloud(path: PathLike, cloud: PointCloud) -> None:
    """
    Write a point cloud.

    ``.ply`` and ``.pcd`` go through Open3D; any other suffix produces plain
    text with one ``x y z`` line per point and no header.
    """
    path = Path(path)

    if path.suffix.lower() in OPEN3D_SUFFIXES:
        pcd = o3d.geometry.PointCloud()
        pcd.points = o3d.utility.Vector3dVector(cloud.points.astype(np.float64))
        if not o3d.io.write_point_cloud(str(path), pcd):
            raise IOError(f"Failed to write point cloud {path}")
    else:
        with open(path, 'w') as fp:
            np.savetxt(fp, np.asarray(cloud.points, dtype=np.float32).reshape(-1, 3), fmt='%f')

    logger.info(f"Stored {len(cloud)} points in {path}")


def _imwrite(path: PathLike, image: np.ndarray) -> None:
    try:
        written = cv2.imwrite(str(path), image)
    except cv2.error as e:
        raise IOError(f"Failed to write image {path}: {e}") from e

    if not written:
        raise IOError(f"Failed to write image {path}")
    logger.debug(f"Wrote {image.shape} {image.dtype} image to {path}")
