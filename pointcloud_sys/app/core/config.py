# app/core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings

from pointcloud_sys.app.core.anomaly.detector import DEFAULT_THRESHOLD as DETECTOR_DEFAULT_THRESHOLD


class Settings(BaseSettings):
    """
    全局配置：统一从环境变量 / .env 读取。
    """
    # 基本服务配置
    APP_NAME: str = "Point Cloud Analysis Service"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    CORS_ORIGINS: List[str] = ["*"]

    # 远端推理服务（模型推理 / 图像重建都在这边做）
    INFERENCE_BASE_URL: str = "http://localhost:9000"
    HTTP_TIMEOUT: float = 10.0
    # 首次请求之外最多再重试几次
    HTTP_RETRIES: int = 2
    HTTP_BACKOFF: float = 0.5
    # 远端不可用时是否退回本地线性回归检测
    INFERENCE_FALLBACK_LOCAL: bool = True
    INFERENCE_SCORE_THRESHOLD: float = 0.5
    INFERENCE_SPHERE_RADIUS: float = 0.015

    # 异常检测默认参数
    DEFAULT_THRESHOLD: float = DETECTOR_DEFAULT_THRESHOLD
    SPHERE_RADIUS: float = 0.02
    SPHERE_COLOR: str = "red"
    LINE_COLOR: str = "yellow"
    LINE_THICKNESS: float = 1.0

    # 上传 / 注册表限制
    MAX_UPLOAD_POINTS: int = 2_000_000
    MAX_CLOUDS: int = 32

    # 结果缓存
    CACHE_MAX_ENTRIES: int = 256
    CACHE_TTL_SECONDS: float = 3600.0
    CACHE_FILE: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# 全局配置单例，其他地方直接 from pointcloud_sys.app.core.config import settings
settings = Settings()
