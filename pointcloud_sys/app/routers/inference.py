# app/routers/inference.py
from fastapi import APIRouter, Depends, File, UploadFile

from pointcloud_sys.app.dependencies.common import get_inference_service, get_registry
from pointcloud_sys.app.schemas.analysis import AnnotationSetResponse
from pointcloud_sys.app.schemas.cloud import CloudSummary
from pointcloud_sys.app.schemas.script import InferenceRequest
from pointcloud_sys.app.services.cloud_registry import CloudRegistry
from pointcloud_sys.app.services.inference_service import InferenceService

router = APIRouter(prefix="/inference", tags=["Inference"])


@router.post("/image", response_model=CloudSummary, status_code=201)
async def reconstruct_image(
    file: UploadFile = File(...),
    inference_service: InferenceService = Depends(get_inference_service),
):
    """
    上传图片，交给远端服务重建成点云，注册后返回概要。
    """
    data = await file.read()
    cloud = await inference_service.reconstruct_image(
        file.filename or "image", data, file.content_type
    )
    return CloudSummary.from_cloud(cloud)


@router.post("/{cloud_id}", response_model=AnnotationSetResponse)
async def run_inference(
    cloud_id: str,
    req: InferenceRequest,
    registry: CloudRegistry = Depends(get_registry),
    inference_service: InferenceService = Depends(get_inference_service),
):
    """
    远端模型推理，分数 > 0.5 的点标成球体；远端不可用时退回本地检测。
    """
    cloud = registry.get(cloud_id)
    outcome = await inference_service.run_inference(cloud, req.script)
    registry.set_annotations(cloud_id, outcome.annotations)
    return AnnotationSetResponse(
        cloud_id=cloud_id,
        annotations=[a.to_dict() for a in outcome.annotations],
        warnings=outcome.warnings,
        source=outcome.source,
    )
