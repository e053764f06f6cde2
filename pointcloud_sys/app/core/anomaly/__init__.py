# app/core/anomaly/__init__.py
from pointcloud_sys.app.core.anomaly.annotate import annotate_detection
from pointcloud_sys.app.core.anomaly.detector import (
    DEFAULT_THRESHOLD,
    DegenerateFitError,
    DetectionError,
    DetectionResult,
    InsufficientDataError,
    LineFit,
    detect,
    fit_line,
)

__all__ = [
    "DEFAULT_THRESHOLD",
    "DegenerateFitError",
    "DetectionError",
    "DetectionResult",
    "InsufficientDataError",
    "LineFit",
    "annotate_detection",
    "detect",
    "fit_line",
]
