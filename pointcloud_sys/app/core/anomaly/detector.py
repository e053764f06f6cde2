# app/core/anomaly/detector.py
"""
线性回归离群点检测：
- 把点投影到 X–Y 平面，用最小二乘拟合 y = m·x + b（Z 不参与拟合）
- 每个点与拟合直线在 Y 方向上的偏差 > threshold 视为离群点

纯函数，无全局状态，可以在多个线程 / worker 中并发调用。
"""
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from pointcloud_sys.app.models.annotation import Point3

DEFAULT_THRESHOLD = 0.05


class DetectionError(Exception):
    """检测失败的基类。"""
    code = "detection_error"


class InsufficientDataError(DetectionError):
    """输入为空，无法回归。"""
    code = "insufficient_data"


class DegenerateFitError(DetectionError):
    """所有点 X 相同，斜率无定义。"""
    code = "fit_undefined"


@dataclass(frozen=True)
class LineFit:
    m: float
    b: float


@dataclass(frozen=True)
class DetectionResult:
    inliers: Tuple[Point3, ...]
    outliers: Tuple[Point3, ...]
    fit: LineFit


def _as_array(points: Sequence[Point3]) -> np.ndarray:
    if len(points) == 0:
        raise InsufficientDataError("no points to fit")
    return np.asarray(points, dtype=np.float64).reshape(-1, 3)


def _fit(xy: np.ndarray) -> LineFit:
    xs = xy[:, 0]
    ys = xy[:, 1]

    if np.all(xs == xs[0]):
        raise DegenerateFitError(f"all {len(xs)} points share x={xs[0]!r}")

    x_mean = xs.mean()
    y_mean = ys.mean()
    dx = xs - x_mean

    sxx = float(np.dot(dx, dx))
    if sxx == 0.0:
        raise DegenerateFitError("zero variance in x")

    m = float(np.dot(dx, ys - y_mean)) / sxx
    b = float(y_mean) - m * float(x_mean)
    return LineFit(m=m, b=b)


def fit_line(points: Sequence[Point3]) -> LineFit:
    """对 X–Y 投影做普通最小二乘，返回斜率 / 截距。"""
    return _fit(_as_array(points))


def detect(points: Sequence[Point3], threshold: float = DEFAULT_THRESHOLD) -> DetectionResult:
    """
    把点集划分为内点 / 离群点：
    1. 拟合 y = m·x + b
    2. distance = |y - (m·x + b)|
    3. distance > threshold 为离群点（严格大于，等于阈值算内点）

    两个结果序列都保持输入顺序。
    """
    if threshold < 0:
        raise ValueError(f"threshold must be non-negative, got {threshold}")

    arr = _as_array(points)
    fit = _fit(arr)

    expected = fit.m * arr[:, 0] + fit.b
    distance = np.abs(arr[:, 1] - expected)
    is_outlier = distance > threshold

    inliers = []
    outliers = []
    for row, flag in zip(arr, is_outlier):
        p = Point3(float(row[0]), float(row[1]), float(row[2]))
        if flag:
            outliers.append(p)
        else:
            inliers.append(p)

    return DetectionResult(inliers=tuple(inliers), outliers=tuple(outliers), fit=fit)
