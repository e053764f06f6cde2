# app/core/ply_reader.py
"""
PLY 读写：上传的 .ply 转成 numpy 数组，注册表里的点云导出回 .ply。
非有限坐标（NaN / Inf）在这里直接拒绝，检测器不处理这种输入。
"""
import io
from typing import Optional, Tuple

import numpy as np
from plyfile import PlyData, PlyElement, PlyParseError

COLOR_PROPS = ("red", "green", "blue")


class PlyFormatError(ValueError):
    """上传内容不是可用的 PLY 点云。"""


def read_ply(data: bytes) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    解析 PLY（ASCII / binary 都支持），返回：
    - points: [N, 3] float64
    - colors: [N, 3] uint8，文件里没有 red/green/blue 时为 None
    """
    try:
        ply = PlyData.read(io.BytesIO(data))
    except (PlyParseError, ValueError, EOFError, IndexError, UnicodeDecodeError) as e:
        raise PlyFormatError(f"cannot parse PLY: {e}") from e

    names = [el.name for el in ply.elements]
    if "vertex" not in names:
        raise PlyFormatError("PLY has no 'vertex' element")

    vertex = ply["vertex"].data
    props = vertex.dtype.names or ()
    missing = [p for p in ("x", "y", "z") if p not in props]
    if missing:
        raise PlyFormatError(f"vertex element missing properties: {missing}")
    if len(vertex) == 0:
        raise PlyFormatError("PLY has no vertices")

    points = np.stack(
        [np.asarray(vertex[p], dtype=np.float64) for p in ("x", "y", "z")],
        axis=1,
    )
    if not np.all(np.isfinite(points)):
        bad = int((~np.isfinite(points)).any(axis=1).sum())
        raise PlyFormatError(f"{bad} vertices have non-finite coordinates")

    colors = None
    if all(p in props for p in COLOR_PROPS):
        colors = np.stack(
            [np.asarray(vertex[p]) for p in COLOR_PROPS], axis=1
        ).astype(np.uint8)

    return points, colors


def write_ply(points: np.ndarray, colors: Optional[np.ndarray] = None) -> bytes:
    """导出 binary little endian PLY。"""
    fields = [("x", "f8"), ("y", "f8"), ("z", "f8")]
    if colors is not None:
        fields += [(p, "u1") for p in COLOR_PROPS]

    vertex = np.empty(len(points), dtype=fields)
    vertex["x"] = points[:, 0]
    vertex["y"] = points[:, 1]
    vertex["z"] = points[:, 2]
    if colors is not None:
        for i, p in enumerate(COLOR_PROPS):
            vertex[p] = colors[:, i]

    buf = io.BytesIO()
    PlyData([PlyElement.describe(vertex, "vertex")], text=False, byte_order="<").write(buf)
    return buf.getvalue()
