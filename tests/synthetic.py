"""
Synthetic stereo scenes shared by the test modules.
"""

import numpy as np


def make_checkerboard(height: int, width: int, square: int = 4, seed: int = 0) -> np.ndarray:
    """
    Textured checkerboard: alternating squares with a random per-square offset.

    Neighbouring squares differ by 1..7 gray levels so the block matcher's
    Sobel prefilter never saturates and no two shifts produce the same cost.
    """
    rng = np.random.default_rng(seed)
    rows = (height + square - 1) // square
    cols = (width + square - 1) // square

    parity = (np.add.outer(np.arange(rows), np.arange(cols)) % 2) * 4
    levels = 96 + parity + rng.integers(0, 4, size=(rows, cols))

    board = np.kron(levels, np.ones((square, square), dtype=np.int64))
    return board[:height, :width].astype(np.uint8)


def shift_pair(left: np.ndarray, shift: int, seed: int = 1):
    """Right view of ``left`` for a uniform disparity of ``shift`` pixels."""
    right = np.empty_like(left)
    right[:, :-shift] = left[:, shift:]

    rng = np.random.default_rng(seed)
    right[:, -shift:] = rng.integers(96, 104, size=right[:, -shift:].shape)
    return left, right


def interior(array: np.ndarray, left: int, margin: int) -> np.ndarray:
    """Crop away the unmatched left band and a margin on every other side."""
    return array[margin:-margin, left + margin:-margin]
