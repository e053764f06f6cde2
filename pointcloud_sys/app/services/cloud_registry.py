# app/services/cloud_registry.py
import threading
import uuid
from collections import OrderedDict
from typing import List, Optional

import numpy as np

from pointcloud_sys.app.models.annotation import Annotation
from pointcloud_sys.app.models.cloud import PointCloud
from pointcloud_sys.app.utils.logging import logger


class CloudNotFoundError(KeyError):
    def __init__(self, cloud_id: str):
        super().__init__(cloud_id)
        self.cloud_id = cloud_id

    def __str__(self) -> str:
        return f"cloud not found: {self.cloud_id}"


class CloudRegistry:
    """
    已上传点云的会话级注册表：
    - 超过 max_clouds 时淘汰最早上传的
    - 标注跟着点云走，每次分析整体替换
    """

    def __init__(self, max_clouds: int = 32):
        self.max_clouds = max_clouds
        self._clouds: "OrderedDict[str, PointCloud]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, name: str, points: np.ndarray, colors: Optional[np.ndarray] = None) -> PointCloud:
        cloud = PointCloud(
            cloud_id=uuid.uuid4().hex,
            name=name,
            points=points,
            colors=colors,
        )
        with self._lock:
            self._clouds[cloud.cloud_id] = cloud
            while len(self._clouds) > self.max_clouds:
                evicted_id, _ = self._clouds.popitem(last=False)
                logger.info(f"Registry full, evicted cloud {evicted_id}")

        logger.info(f"Registered cloud {cloud.cloud_id} name={name!r} points={cloud.num_points}")
        return cloud

    def get(self, cloud_id: str) -> PointCloud:
        with self._lock:
            cloud = self._clouds.get(cloud_id)
        if cloud is None:
            raise CloudNotFoundError(cloud_id)
        return cloud

    def list(self) -> List[PointCloud]:
        with self._lock:
            return list(self._clouds.values())

    def remove(self, cloud_id: str) -> None:
        with self._lock:
            if self._clouds.pop(cloud_id, None) is None:
                raise CloudNotFoundError(cloud_id)
        logger.info(f"Removed cloud {cloud_id}")

    def set_annotations(self, cloud_id: str, annotations: List[Annotation]) -> None:
        cloud = self.get(cloud_id)
        with self._lock:
            cloud.annotations = list(annotations)

    def get_annotations(self, cloud_id: str) -> List[Annotation]:
        return list(self.get(cloud_id).annotations)

    def __len__(self) -> int:
        with self._lock:
            return len(self._clouds)
