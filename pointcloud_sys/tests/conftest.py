# tests/conftest.py
import numpy as np
import pytest

from pointcloud_sys.app.core.ply_reader import write_ply


def line_with_bump(n: int = 11, bump_at: int = 5, bump: float = 1.0) -> np.ndarray:
    """y = 2x + 1 上的 n 个点，第 bump_at 个点 Y 方向抬高 bump。"""
    xs = np.arange(n, dtype=np.float64)
    ys = 2 * xs + 1
    ys[bump_at] += bump
    return np.stack([xs, ys, np.zeros(n)], axis=1)


@pytest.fixture
def bump_points() -> np.ndarray:
    return line_with_bump()


@pytest.fixture
def bump_ply(bump_points) -> bytes:
    return write_ply(bump_points)


ASCII_PLY = b"""ply
format ascii 1.0
comment three colored points
element vertex 3
property float x
property float y
property float z
property uchar red
property uchar green
property uchar blue
end_header
0 0 0 255 0 0
1 1 0 0 255 0
2 2 0.5 0 0 255
"""


@pytest.fixture
def ascii_ply() -> bytes:
    return ASCII_PLY
