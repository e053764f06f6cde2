# app/models/cloud.py
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from pointcloud_sys.app.models.annotation import Annotation, Point3


@dataclass
class PointCloud:
    """
    已上传的一份点云：
    - points: [N, 3] float64
    - colors: [N, 3] uint8，没有颜色时为 None
    - annotations: 最近一次分析产生的标注，每次分析整体替换
    """
    cloud_id: str
    name: str
    points: np.ndarray
    colors: Optional[np.ndarray] = None
    annotations: List[Annotation] = field(default_factory=list)

    @property
    def num_points(self) -> int:
        return int(self.points.shape[0])

    def bounds(self) -> Tuple[Point3, Point3]:
        lo = self.points.min(axis=0)
        hi = self.points.max(axis=0)
        return Point3(*map(float, lo)), Point3(*map(float, hi))

    def centroid(self) -> Point3:
        c = self.points.mean(axis=0)
        return Point3(*map(float, c))

    def content_bytes(self) -> bytes:
        # 用于缓存 key：同样的坐标内容得到同样的 key
        return np.ascontiguousarray(self.points, dtype=np.float64).tobytes()
