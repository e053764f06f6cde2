# app/services/inference_service.py
import io
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx
import numpy as np
from fastapi.concurrency import run_in_threadpool
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from pointcloud_sys.app.core.config import settings
from pointcloud_sys.app.models.annotation import Annotation, Point3, Sphere, annotation_from_dict
from pointcloud_sys.app.models.cloud import PointCloud
from pointcloud_sys.app.schemas.script import AnalyzeAnomaliesCommand, InferenceAction, InferenceScript
from pointcloud_sys.app.services.cache_service import ResultCache
from pointcloud_sys.app.services.cloud_registry import CloudRegistry
from pointcloud_sys.app.services.external_service import (
    ExternalServiceError,
    call_external_http,
    call_external_upload,
)
from pointcloud_sys.app.services.script_service import ScriptError, ScriptService
from pointcloud_sys.app.utils.logging import logger


class InferenceError(Exception):
    """远端返回了结果，但内容对不上（格式错、数量不一致）。"""


class InvalidImageError(ValueError):
    """上传的不是可识别的图片。"""


@dataclass
class InferenceOutcome:
    annotations: List[Annotation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    # "remote": 远端模型；"local": 退回本地线性回归
    source: str = "remote"


def _verify_image(filename: str, data: bytes) -> Optional[str]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidImageError(f"cannot read image {filename!r}: {e}") from e


def parse_inference_script(script: Union[str, Dict[str, Any]]) -> InferenceScript:
    if isinstance(script, str):
        try:
            script = json.loads(script)
        except ValueError as e:
            raise ScriptError(f"Script is not valid JSON: {e}") from e

    if not isinstance(script, dict):
        raise ScriptError("Script invalide: expected {\"model\": ..., \"actions\": [...]}")
    try:
        return InferenceScript.model_validate(script)
    except ValidationError as e:
        err = e.errors()[0]
        where = ".".join(str(p) for p in err["loc"])
        raise ScriptError(f"Script invalide: {where}: {err['msg']}") from e


def _first_score(value: Any) -> float:
    if isinstance(value, (list, tuple)):
        if not value:
            raise InferenceError("empty score vector")
        value = value[0]
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InferenceError(f"score is not a number: {value!r}") from e


class InferenceService:
    """
    推理业务封装：
    - 模型推理在远端服务做，这里只负责组包 / 解析 / 生成标注
    - 远端不可用时（网络错误 / 5xx 且重试用尽）可退回本地线性回归检测，4xx 不退回
    - 图片上传给远端做重建，返回的点云注册进 registry
    CPU 部分（组包、逐点打分、本地检测、图片校验）都放到线程池里跑，不阻塞事件循环。
    """

    def __init__(
        self,
        registry: CloudRegistry,
        cache: ResultCache,
        script_service: ScriptService,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.registry = registry
        self.cache = cache
        self.script_service = script_service
        self.transport = transport
        # 重建结果是整朵点云，只放内存，不进落盘缓存
        self.reconstructions = ResultCache(
            max_entries=settings.CACHE_MAX_ENTRIES,
            ttl_seconds=settings.CACHE_TTL_SECONDS,
        )
        logger.info(f"InferenceService initialized, backend={settings.INFERENCE_BASE_URL}")

    async def run_inference(self, cloud: PointCloud, script: Union[str, Dict[str, Any]]) -> InferenceOutcome:
        script = parse_inference_script(script)
        action = script.actions[0]
        color = action.color or settings.SPHERE_COLOR

        key = ResultCache.make_key("inference", cloud.content_bytes(), {"model": script.model, "color": color})
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Inference cache hit for cloud {cloud.cloud_id}")
            return InferenceOutcome(annotations=[annotation_from_dict(a) for a in cached], source="remote")

        points = await run_in_threadpool(cloud.points.tolist)
        try:
            data = await call_external_http(
                f"{settings.INFERENCE_BASE_URL}/predict",
                payload={"model": script.model, "points": points},
                timeout=settings.HTTP_TIMEOUT,
                retries=settings.HTTP_RETRIES,
                backoff=settings.HTTP_BACKOFF,
                transport=self.transport,
            )
        except ExternalServiceError as e:
            # 4xx 是远端明确拒绝（模型不存在、请求不合法），不能拿本地结果冒充
            unavailable = e.status_code is None or e.status_code >= 500
            if not (unavailable and settings.INFERENCE_FALLBACK_LOCAL):
                raise
            logger.warning(f"Remote inference failed, falling back to local detector: {e}")
            return await run_in_threadpool(self._local_fallback, cloud, action, color)

        annotations = await run_in_threadpool(self._annotations_from_scores, cloud, data, color)
        await run_in_threadpool(self.cache.set, key, [a.to_dict() for a in annotations])
        logger.info(f"Remote inference on cloud {cloud.cloud_id}: flagged={len(annotations)}")
        return InferenceOutcome(annotations=annotations, source="remote")

    def _annotations_from_scores(self, cloud: PointCloud, data: Any, color: str) -> List[Annotation]:
        scores = data.get("scores") if isinstance(data, dict) else None
        if not isinstance(scores, list):
            raise InferenceError("backend response has no 'scores' list")
        if len(scores) != cloud.num_points:
            raise InferenceError(f"expected {cloud.num_points} scores, got {len(scores)}")

        annotations: List[Annotation] = []
        for idx, raw in enumerate(scores):
            if _first_score(raw) > settings.INFERENCE_SCORE_THRESHOLD:
                x, y, z = cloud.points[idx]
                annotations.append(
                    Sphere(
                        position=Point3(float(x), float(y), float(z)),
                        radius=settings.INFERENCE_SPHERE_RADIUS,
                        color=color,
                    )
                )
        return annotations

    def _local_fallback(self, cloud: PointCloud, action: InferenceAction, color: str) -> InferenceOutcome:
        cmd = AnalyzeAnomaliesCommand(
            type="analyze_anomalies",
            threshold=action.threshold,
            color=color,
            radius=settings.INFERENCE_SPHERE_RADIUS,
            connect_inliers=False,
        )
        sub = self.script_service.analyze(cloud, cmd)
        return InferenceOutcome(annotations=sub.annotations, warnings=sub.warnings, source="local")

    async def reconstruct_image(self, filename: str, data: bytes, content_type: Optional[str] = None) -> PointCloud:
        """
        图片 -> 远端重建 -> 点云，注册后返回。
        """
        fmt = await run_in_threadpool(_verify_image, filename, data)

        key = ResultCache.make_key("reconstruct", data)
        resp = self.reconstructions.get(key)
        if resp is None:
            resp = await call_external_upload(
                f"{settings.INFERENCE_BASE_URL}/reconstruct",
                files={"file": (filename, data, content_type or f"image/{(fmt or 'png').lower()}")},
                timeout=settings.HTTP_TIMEOUT,
                retries=settings.HTTP_RETRIES,
                backoff=settings.HTTP_BACKOFF,
                transport=self.transport,
            )

        points, colors = await run_in_threadpool(self._cloud_from_response, resp)
        self.reconstructions.set(key, resp)
        return self.registry.add(filename, points, colors)

    @staticmethod
    def _cloud_from_response(resp: Any):
        if not isinstance(resp, dict) or "points" not in resp:
            raise InferenceError("backend response has no 'points'")
        try:
            points = np.asarray(resp["points"], dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InferenceError(f"invalid points in backend response: {e}") from e
        if points.ndim != 2 or points.shape[1] != 3 or len(points) == 0:
            raise InferenceError(f"points must be a non-empty [N, 3] array, got shape {points.shape}")
        if not np.all(np.isfinite(points)):
            raise InferenceError("backend returned non-finite coordinates")

        colors = None
        if resp.get("colors") is not None:
            colors = np.asarray(resp["colors"])
            if colors.shape != points.shape:
                raise InferenceError(f"colors shape {colors.shape} does not match points {points.shape}")
            colors = np.clip(colors, 0, 255).astype(np.uint8)
        return points, colors
