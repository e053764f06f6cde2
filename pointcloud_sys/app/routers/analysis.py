# app/routers/analysis.py
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from pointcloud_sys.app.core.anomaly import detect
from pointcloud_sys.app.core.config import settings
from pointcloud_sys.app.dependencies.common import get_registry, get_script_service
from pointcloud_sys.app.models.annotation import Point3
from pointcloud_sys.app.schemas.analysis import (
    AnnotationSetResponse,
    AnomalyRequest,
    DetectRequest,
    DetectResponse,
    LineFitOut,
)
from pointcloud_sys.app.schemas.script import AnalyzeAnomaliesCommand
from pointcloud_sys.app.services.cloud_registry import CloudRegistry
from pointcloud_sys.app.services.script_service import ScriptService

router = APIRouter(prefix="/analysis", tags=["Analysis"])


@router.post("/detect", response_model=DetectResponse)
async def detect_points(req: DetectRequest):
    """
    直接对请求里的点做线性回归离群点检测：
    - 空输入 -> 422 insufficient_data
    - X 全相同 -> 422 fit_undefined
    """
    threshold = settings.DEFAULT_THRESHOLD if req.threshold is None else req.threshold
    points = [Point3(*p) for p in req.points]
    result = await run_in_threadpool(detect, points, threshold)
    return DetectResponse(
        inliers=list(result.inliers),
        outliers=list(result.outliers),
        fit=LineFitOut(m=result.fit.m, b=result.fit.b),
    )


@router.post("/{cloud_id}/anomalies", response_model=AnnotationSetResponse)
async def analyze_cloud(
    cloud_id: str,
    req: AnomalyRequest,
    registry: CloudRegistry = Depends(get_registry),
    script_service: ScriptService = Depends(get_script_service),
):
    """
    对已上传点云跑检测，结果整体替换该点云上的标注。
    """
    cloud = registry.get(cloud_id)
    cmd = AnalyzeAnomaliesCommand(type="analyze_anomalies", **req.model_dump())
    outcome = await run_in_threadpool(script_service.analyze, cloud, cmd)
    registry.set_annotations(cloud_id, outcome.annotations)
    return AnnotationSetResponse(
        cloud_id=cloud_id,
        annotations=[a.to_dict() for a in outcome.annotations],
        warnings=outcome.warnings,
    )
