# app/schemas/annotation.py
from typing import Annotated, List, Literal, Tuple, Union

from pydantic import BaseModel, Field, FiniteFloat

# 边界上就拒绝 NaN / Inf，检测器不再处理非有限坐标
Vec3 = Tuple[FiniteFloat, FiniteFloat, FiniteFloat]
RGB = Tuple[int, int, int]


class SphereOut(BaseModel):
    type: Literal["sphere"] = "sphere"
    position: Vec3
    radius: float
    color: str


class LineOut(BaseModel):
    type: Literal["line"] = "line"
    points: List[Vec3]
    color: str
    thickness: float


AnnotationOut = Annotated[Union[SphereOut, LineOut], Field(discriminator="type")]
