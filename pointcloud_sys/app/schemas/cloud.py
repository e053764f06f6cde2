# app/schemas/cloud.py
from typing import List, Optional

from pydantic import BaseModel

from pointcloud_sys.app.models.cloud import PointCloud
from pointcloud_sys.app.schemas.annotation import RGB, AnnotationOut, Vec3


class CloudSummary(BaseModel):
    """
    上传 / 查询点云时返回的概要信息（不含点坐标本身）
    """
    cloud_id: str
    name: str
    num_points: int
    has_colors: bool
    bounds_min: Vec3
    bounds_max: Vec3
    centroid: Vec3
    num_annotations: int = 0

    @classmethod
    def from_cloud(cls, cloud: PointCloud) -> "CloudSummary":
        lo, hi = cloud.bounds()
        return cls(
            cloud_id=cloud.cloud_id,
            name=cloud.name,
            num_points=cloud.num_points,
            has_colors=cloud.colors is not None,
            bounds_min=tuple(lo),
            bounds_max=tuple(hi),
            centroid=tuple(cloud.centroid()),
            num_annotations=len(cloud.annotations),
        )


class CloudScene(BaseModel):
    """
    渲染端需要的完整场景：点 + 颜色 + 当前标注集合
    """
    cloud_id: str
    points: List[Vec3]
    colors: Optional[List[RGB]] = None
    annotations: List[AnnotationOut]

    @classmethod
    def from_cloud(cls, cloud: PointCloud) -> "CloudScene":
        return cls(
            cloud_id=cloud.cloud_id,
            points=cloud.points.tolist(),
            colors=cloud.colors.tolist() if cloud.colors is not None else None,
            annotations=[a.to_dict() for a in cloud.annotations],
        )
