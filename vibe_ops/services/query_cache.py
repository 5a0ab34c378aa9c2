"""进程内查询缓存：按 key 注册加载函数，支持取消进行中的读取与强制重取."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Any]]


def flow_query_key(flow_id: str) -> tuple[str, str]:
    return ("flow", flow_id)


class QueryCache:
    def __init__(self) -> None:
        self._data: Dict[Hashable, Any] = {}
        self._loaders: Dict[Hashable, Loader] = {}
        self._inflight: Dict[Hashable, asyncio.Task] = {}

    def register_loader(self, key: Hashable, loader: Loader) -> None:
        self._loaders[key] = loader

    async def fetch_query(self, key: Hashable) -> Any:
        task = self._inflight.get(key)
        if task is None:
            loader = self._loaders.get(key)
            if loader is None:
                return self._data.get(key)
            task = asyncio.ensure_future(loader())
            self._inflight[key] = task
        try:
            value = await task
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]
        self._data[key] = value
        return value

    async def cancel_queries(self, key: Hashable) -> None:
        task = self._inflight.pop(key, None)
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("Cancelled in-flight query %s", key)

    def get_query_data(self, key: Hashable) -> Any:
        return self._data.get(key)

    def set_query_data(self, key: Hashable, updater: Callable[[Any], Any] | Any) -> None:
        self._data[key] = updater(self._data.get(key)) if callable(updater) else updater

    async def refetch_queries(self, key: Hashable) -> None:
        if key in self._loaders:
            await self.fetch_query(key)
