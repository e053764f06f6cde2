# app/utils/logging.py
import logging
import sys
from typing import Optional

LOGGER_NAME = "pointcloud_sys"

# 全局 logger，其他地方直接 from pointcloud_sys.app.utils.logging import logger
logger = logging.getLogger(LOGGER_NAME)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    初始化 pointcloud_sys 命名空间下的日志输出：
    - 控制台（stdout）
    - 可选：写入文件
    重复调用会先清掉旧 handler，避免 reload 时日志重复。
    """
    logger.setLevel(level)

    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")
