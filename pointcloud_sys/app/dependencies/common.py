# app/dependencies/common.py
from functools import lru_cache

from pointcloud_sys.app.core.config import settings
from pointcloud_sys.app.services.cache_service import ResultCache
from pointcloud_sys.app.services.cloud_registry import CloudRegistry
from pointcloud_sys.app.services.inference_service import InferenceService
from pointcloud_sys.app.services.script_service import ScriptService


@lru_cache()
def get_registry() -> CloudRegistry:
    """
    用 lru_cache 模拟简单的单例：
    - FastAPI 的 Depends 会调用这个函数，但真正的实例只会初始化一次
    - 注册表 / 缓存都是进程内共享状态
    """
    return CloudRegistry(max_clouds=settings.MAX_CLOUDS)


@lru_cache()
def get_cache() -> ResultCache:
    return ResultCache(
        max_entries=settings.CACHE_MAX_ENTRIES,
        ttl_seconds=settings.CACHE_TTL_SECONDS,
        persist_path=settings.CACHE_FILE,
    )


@lru_cache()
def get_script_service() -> ScriptService:
    return ScriptService(cache=get_cache())


@lru_cache()
def get_inference_service() -> InferenceService:
    return InferenceService(
        registry=get_registry(),
        cache=get_cache(),
        script_service=get_script_service(),
    )
