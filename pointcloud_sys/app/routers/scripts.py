# app/routers/scripts.py
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from pointcloud_sys.app.dependencies.common import get_registry, get_script_service
from pointcloud_sys.app.schemas.analysis import AnnotationSetResponse
from pointcloud_sys.app.schemas.script import ScriptRequest
from pointcloud_sys.app.services.cloud_registry import CloudRegistry
from pointcloud_sys.app.services.script_service import ScriptService

router = APIRouter(prefix="/scripts", tags=["Scripts"])


@router.post("/{cloud_id}/run", response_model=AnnotationSetResponse)
async def run_script(
    cloud_id: str,
    req: ScriptRequest,
    registry: CloudRegistry = Depends(get_registry),
    script_service: ScriptService = Depends(get_script_service),
):
    """
    执行脚本（JSON 数组），例如：
    [{"type": "analyze_anomalies", "threshold": 0.05, "color": "red"},
     {"type": "sphere", "position": [0, 0, 0], "radius": 0.05}]
    """
    cloud = registry.get(cloud_id)
    outcome = await run_in_threadpool(script_service.run, cloud, req.script)
    registry.set_annotations(cloud_id, outcome.annotations)
    return AnnotationSetResponse(
        cloud_id=cloud_id,
        annotations=[a.to_dict() for a in outcome.annotations],
        warnings=outcome.warnings,
    )
