# app/services/cache_service.py
import hashlib
import json
import os
import threading
import time
from collections import OrderedDict
from typing import Any, Optional

from pointcloud_sys.app.utils.logging import logger


class ResultCache:
    """
    分析结果缓存（对应前端 localStorage 里的结果缓存）：
    - LRU，超过 max_entries 淘汰最久未用的
    - ttl_seconds 过期即视为未命中（0 表示不过期）
    - 可选落盘为 JSON 文件，重启后还能命中
    值必须是可 JSON 序列化的对象。
    """

    def __init__(self, max_entries: int = 256, ttl_seconds: float = 0.0, persist_path: Optional[str] = None):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.persist_path = persist_path
        self._data: "OrderedDict[str, tuple]" = OrderedDict()
        self._lock = threading.Lock()

        if persist_path:
            self._load()

    @staticmethod
    def make_key(namespace: str, payload: bytes, params: Any = None) -> str:
        h = hashlib.sha256()
        h.update(namespace.encode("utf-8"))
        h.update(b"\x00")
        h.update(payload)
        h.update(b"\x00")
        h.update(json.dumps(params, sort_keys=True, separators=(",", ":")).encode("utf-8"))
        return f"{namespace}:{h.hexdigest()}"

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            stored_at, value = item
            if self.ttl_seconds and time.time() - stored_at > self.ttl_seconds:
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = (time.time(), value)
            self._data.move_to_end(key)
            while len(self._data) > self.max_entries:
                self._data.popitem(last=False)
            if self.persist_path:
                self._save()

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            if self.persist_path:
                self._save()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _load(self) -> None:
        if not os.path.exists(self.persist_path):
            return
        try:
            with open(self.persist_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            for key, stored_at, value in raw:
                self._data[key] = (float(stored_at), value)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cache file {self.persist_path}: {e}")
            self._data.clear()
            return
        logger.info(f"Loaded {len(self._data)} cached results from {self.persist_path}")

    def _save(self) -> None:
        # 落盘失败只影响下次重启能否命中，内存里的结果照常返回
        rows = [[key, stored_at, value] for key, (stored_at, value) in self._data.items()]
        tmp_path = f"{self.persist_path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(rows, f)
            os.replace(tmp_path, self.persist_path)
        except OSError as e:
            logger.warning(f"Could not write cache file {self.persist_path}: {e}")
