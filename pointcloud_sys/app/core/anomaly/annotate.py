# app/core/anomaly/annotate.py
from typing import List

from pointcloud_sys.app.core.anomaly.detector import DetectionResult
from pointcloud_sys.app.models.annotation import Annotation, Polyline, Sphere


def annotate_detection(
    result: DetectionResult,
    sphere_radius: float,
    sphere_color: str,
    connect_inliers: bool = True,
    line_color: str = "yellow",
    line_thickness: float = 1.0,
) -> List[Annotation]:
    """
    检测结果 -> 渲染用标注：
    - 每个离群点一个球体（保持输入顺序）
    - 可选：把所有内点按顺序连成一条折线（至少两个内点才画）
    """
    annotations: List[Annotation] = [
        Sphere(position=p, radius=sphere_radius, color=sphere_color)
        for p in result.outliers
    ]

    if connect_inliers and len(result.inliers) >= 2:
        annotations.append(
            Polyline(points=result.inliers, color=line_color, thickness=line_thickness)
        )

    return annotations
