# app/services/script_service.py
import json
from dataclasses import dataclass, field
from typing import Any, List, Union

from pydantic import ValidationError

from pointcloud_sys.app.core.anomaly import DetectionError, annotate_detection, detect
from pointcloud_sys.app.core.config import settings
from pointcloud_sys.app.models.annotation import (
    Annotation,
    Point3,
    Polyline,
    Sphere,
    annotation_from_dict,
)
from pointcloud_sys.app.models.cloud import PointCloud
from pointcloud_sys.app.schemas.script import (
    COMMAND_TYPES,
    AnalyzeAnomaliesCommand,
    LineCommand,
    ScriptCommand,
    SphereCommand,
)
from pointcloud_sys.app.services.cache_service import ResultCache
from pointcloud_sys.app.utils.logging import logger


class ScriptError(ValueError):
    """脚本本身有问题（不是 JSON、不是数组、命令不认识、参数不合法）。"""


@dataclass
class ScriptOutcome:
    annotations: List[Annotation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def parse_script(script: Union[str, List[Any]]) -> List[ScriptCommand]:
    """
    文本 / 已解析的列表 -> 命令对象列表。
    任何一条命令不合法，整个脚本都不执行。
    """
    if isinstance(script, str):
        try:
            script = json.loads(script)
        except ValueError as e:
            raise ScriptError(f"Script is not valid JSON: {e}") from e

    if not isinstance(script, list):
        raise ScriptError("Script must be a JSON array.")

    commands: List[ScriptCommand] = []
    for idx, raw in enumerate(script):
        if not isinstance(raw, dict):
            raise ScriptError(f"command #{idx} must be an object")
        kind = raw.get("type")
        model = COMMAND_TYPES.get(kind) if isinstance(kind, str) else None
        if model is None:
            raise ScriptError(f"command #{idx}: unknown type {kind!r}")
        try:
            commands.append(model.model_validate(raw))
        except ValidationError as e:
            raise ScriptError(f"command #{idx} ({kind}): {e.errors()[0]['msg']}") from e

    return commands


class ScriptService:
    """
    小脚本解释器：
    - sphere / line：原样变成标注
    - analyze_anomalies：跑线性回归离群点检测，结果按 (点云内容, 参数) 缓存
    一次运行的输出整体替换点云上已有的标注。
    """

    def __init__(self, cache: ResultCache):
        self.cache = cache

    def run(self, cloud: PointCloud, script: Union[str, List[Any]]) -> ScriptOutcome:
        commands = parse_script(script)
        outcome = ScriptOutcome()

        for cmd in commands:
            if isinstance(cmd, SphereCommand):
                outcome.annotations.append(
                    Sphere(position=Point3(*cmd.position), radius=cmd.radius, color=cmd.color)
                )
            elif isinstance(cmd, LineCommand):
                outcome.annotations.append(
                    Polyline(
                        points=tuple(Point3(*p) for p in cmd.points),
                        color=cmd.color or settings.LINE_COLOR,
                        thickness=cmd.thickness or settings.LINE_THICKNESS,
                    )
                )
            elif isinstance(cmd, AnalyzeAnomaliesCommand):
                sub = self.analyze(cloud, cmd)
                outcome.annotations.extend(sub.annotations)
                outcome.warnings.extend(sub.warnings)

        logger.info(
            f"Script on cloud {cloud.cloud_id}: commands={len(commands)}, "
            f"annotations={len(outcome.annotations)}, warnings={len(outcome.warnings)}"
        )
        return outcome

    def analyze(self, cloud: PointCloud, cmd: AnalyzeAnomaliesCommand) -> ScriptOutcome:
        threshold = settings.DEFAULT_THRESHOLD if cmd.threshold is None else cmd.threshold
        params = {
            "threshold": threshold,
            "color": cmd.color or settings.SPHERE_COLOR,
            "radius": cmd.radius or settings.SPHERE_RADIUS,
            "connect_inliers": cmd.connect_inliers,
            "line_color": cmd.line_color or settings.LINE_COLOR,
            "thickness": cmd.thickness or settings.LINE_THICKNESS,
        }

        key = ResultCache.make_key("analyze", cloud.content_bytes(), params)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Analysis cache hit for cloud {cloud.cloud_id}")
            return ScriptOutcome(
                annotations=[annotation_from_dict(a) for a in cached["annotations"]],
                warnings=list(cached["warnings"]),
            )

        try:
            result = detect(cloud.points, threshold)
        except DetectionError as e:
            # 退化 / 数据不足不算脚本错误：这条命令不产生标注，给出提示
            logger.warning(f"analyze_anomalies on cloud {cloud.cloud_id} skipped: {e}")
            outcome = ScriptOutcome(warnings=[f"analyze_anomalies skipped ({e.code}): {e}"])
        else:
            logger.info(
                f"Detection on cloud {cloud.cloud_id}: m={result.fit.m:.4f} b={result.fit.b:.4f} "
                f"outliers={len(result.outliers)} inliers={len(result.inliers)}"
            )
            outcome = ScriptOutcome(
                annotations=annotate_detection(
                    result,
                    sphere_radius=params["radius"],
                    sphere_color=params["color"],
                    connect_inliers=params["connect_inliers"],
                    line_color=params["line_color"],
                    line_thickness=params["thickness"],
                )
            )

        self.cache.set(key, {
            "annotations": [a.to_dict() for a in outcome.annotations],
            "warnings": outcome.warnings,
        })
        return outcome
