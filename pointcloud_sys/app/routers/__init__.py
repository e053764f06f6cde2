# pointcloud_sys/app/routers/__init__.py
from importlib import import_module
from pkgutil import iter_modules
from typing import List

from fastapi import APIRouter

from pointcloud_sys.app.utils.logging import logger


def get_all_routers() -> List[APIRouter]:
    """
    扫描 routers 包下的模块，收集模块级变量 `router`（APIRouter）。
    新增接口只需在这里加一个 xxx.py 并定义 `router`，main.py 会自动注册。
    按模块名排序，保证注册顺序稳定。
    """
    found: List[APIRouter] = []

    for info in sorted(iter_modules(__path__), key=lambda m: m.name):
        # 下划线开头的是内部模块，不是接口
        if info.name.startswith("_"):
            continue

        module = import_module(f"{__name__}.{info.name}")
        router = getattr(module, "router", None)
        if not isinstance(router, APIRouter):
            continue

        logger.debug(f"Registering router {info.name} (prefix={router.prefix or '/'})")
        found.append(router)

    return found
