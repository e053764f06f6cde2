# app/models/annotation.py
from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Tuple, Union


class Point3(NamedTuple):
    """三维点，只有坐标，没有其他身份信息。"""
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Sphere:
    """
    球体标注：离群点、脚本里手写的标记点都用它表示。
    - 不依赖 FastAPI / Pydantic，纯 Python 业务内使用
    """
    position: Point3
    radius: float
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "sphere",
            "position": list(self.position),
            "radius": self.radius,
            "color": self.color,
        }


@dataclass(frozen=True)
class Polyline:
    """折线标注：按顺序连接若干点（例如所有内点）。"""
    points: Tuple[Point3, ...]
    color: str
    thickness: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "line",
            "points": [list(p) for p in self.points],
            "color": self.color,
            "thickness": self.thickness,
        }


Annotation = Union[Sphere, Polyline]


def annotation_from_dict(data: Dict[str, Any]) -> Annotation:
    """to_dict() 的逆操作，缓存里取出来的结果要转回对象。"""
    kind = data.get("type")
    if kind == "sphere":
        return Sphere(
            position=Point3(*data["position"]),
            radius=float(data["radius"]),
            color=data["color"],
        )
    if kind == "line":
        return Polyline(
            points=tuple(Point3(*p) for p in data["points"]),
            color=data["color"],
            thickness=float(data["thickness"]),
        )
    raise ValueError(f"unknown annotation type: {kind!r}")
