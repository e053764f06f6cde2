# app/schemas/analysis.py
from typing import List, Optional

from pydantic import BaseModel, Field

from pointcloud_sys.app.schemas.annotation import AnnotationOut, Vec3


class DetectRequest(BaseModel):
    """
    直接对一组点做离群点检测（不需要先上传点云）
    """
    points: List[Vec3]
    threshold: Optional[float] = Field(default=None, ge=0)


class LineFitOut(BaseModel):
    m: float
    b: float


class DetectResponse(BaseModel):
    inliers: List[Vec3]
    outliers: List[Vec3]
    fit: LineFitOut


class AnomalyRequest(BaseModel):
    """
    对已上传点云做检测，参数都可选，缺省取配置里的默认值
    """
    threshold: Optional[float] = Field(default=None, ge=0)
    color: Optional[str] = None
    radius: Optional[float] = Field(default=None, gt=0)
    connect_inliers: bool = True
    line_color: Optional[str] = None
    thickness: Optional[float] = Field(default=None, gt=0)


class AnnotationSetResponse(BaseModel):
    """
    一次分析 / 脚本 / 推理的输出：整体替换点云上原有的标注
    """
    cloud_id: str
    annotations: List[AnnotationOut]
    warnings: List[str] = []
    source: str = "local"
