# app/schemas/script.py
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat

from pointcloud_sys.app.schemas.annotation import Vec3


class SphereCommand(BaseModel):
    type: Literal["sphere"]
    position: Vec3
    radius: float = Field(default=0.02, gt=0)
    color: str = "red"


class LineCommand(BaseModel):
    type: Literal["line"]
    points: List[Vec3] = Field(min_length=2)
    color: Optional[str] = None
    thickness: Optional[float] = Field(default=None, gt=0)


class AnalyzeAnomaliesCommand(BaseModel):
    type: Literal["analyze_anomalies"]
    threshold: Optional[float] = Field(default=None, ge=0)
    color: Optional[str] = None
    radius: Optional[float] = Field(default=None, gt=0)
    connect_inliers: bool = True
    line_color: Optional[str] = None
    thickness: Optional[float] = Field(default=None, gt=0)


ScriptCommand = Union[SphereCommand, LineCommand, AnalyzeAnomaliesCommand]

COMMAND_TYPES = {
    "sphere": SphereCommand,
    "line": LineCommand,
    "analyze_anomalies": AnalyzeAnomaliesCommand,
}


class ScriptRequest(BaseModel):
    """
    脚本：JSON 数组，可以直接传数组，也可以传文本框里的原始字符串
    """
    script: Union[str, List[Dict[str, Any]]]


class InferenceRequest(BaseModel):
    """
    推理脚本：{"model": "...", "actions": [{"type": "highlight_anomalies", "color": "yellow"}]}
    """
    script: Union[str, Dict[str, Any]]


class InferenceAction(BaseModel):
    """
    推理脚本里的一个动作，只用到 color / threshold，其余字段原样保留
    """
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    color: Optional[str] = None
    threshold: Optional[FiniteFloat] = Field(default=None, ge=0)


class InferenceScript(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model: str = Field(min_length=1)
    actions: List[InferenceAction] = Field(min_length=1)
