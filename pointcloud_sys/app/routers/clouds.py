# app/routers/clouds.py
import os
import re
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from pointcloud_sys.app.core.config import settings
from pointcloud_sys.app.core.ply_reader import read_ply, write_ply
from pointcloud_sys.app.dependencies.common import get_registry
from pointcloud_sys.app.schemas.cloud import CloudScene, CloudSummary
from pointcloud_sys.app.services.cloud_registry import CloudRegistry

router = APIRouter(prefix="/clouds", tags=["Clouds"])


def download_name(name: str) -> str:
    """下载文件名：去掉原扩展名，只留安全字符，统一 .ply 后缀"""
    stem = os.path.splitext(os.path.basename(name))[0]
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", stem).strip("._")
    return f"{stem or 'cloud'}.ply"


@router.post("", response_model=CloudSummary, status_code=201)
async def upload_cloud(
    file: UploadFile = File(...),
    registry: CloudRegistry = Depends(get_registry),
):
    """
    上传 .ply 点云，解析后放进注册表。
    """
    name = file.filename or "cloud.ply"
    if not name.lower().endswith(".ply"):
        raise HTTPException(status_code=400, detail="only .ply files are accepted")

    data = await file.read()
    points, colors = await run_in_threadpool(read_ply, data)
    if len(points) > settings.MAX_UPLOAD_POINTS:
        raise HTTPException(
            status_code=413,
            detail=f"cloud has {len(points)} points, limit is {settings.MAX_UPLOAD_POINTS}",
        )

    cloud = registry.add(name, points, colors)
    return CloudSummary.from_cloud(cloud)


@router.get("", response_model=List[CloudSummary])
async def list_clouds(registry: CloudRegistry = Depends(get_registry)):
    return [CloudSummary.from_cloud(c) for c in registry.list()]


@router.get("/{cloud_id}", response_model=CloudSummary)
async def get_cloud(cloud_id: str, registry: CloudRegistry = Depends(get_registry)):
    return CloudSummary.from_cloud(registry.get(cloud_id))


@router.delete("/{cloud_id}", status_code=204)
async def delete_cloud(cloud_id: str, registry: CloudRegistry = Depends(get_registry)):
    registry.remove(cloud_id)
    return Response(status_code=204)


@router.get("/{cloud_id}/scene", response_model=CloudScene)
async def get_scene(cloud_id: str, registry: CloudRegistry = Depends(get_registry)):
    """
    渲染端用：点坐标 + 颜色 + 当前标注
    """
    return CloudScene.from_cloud(registry.get(cloud_id))


@router.get("/{cloud_id}/ply")
async def download_ply(cloud_id: str, registry: CloudRegistry = Depends(get_registry)):
    cloud = registry.get(cloud_id)
    body = await run_in_threadpool(write_ply, cloud.points, cloud.colors)
    return Response(
        content=body,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{download_name(cloud.name)}"'},
    )
