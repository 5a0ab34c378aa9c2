"""乐观更新：先改缓存，真实写入失败时恢复快照."""

from __future__ import annotations

import copy
import logging
from typing import Any, Awaitable, Callable, Hashable, TypeVar

from vibe_ops.errors import MutationFailedError
from vibe_ops.models import ServiceResult
from vibe_ops.storage.ports import QueryCachePort

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OptimisticCacheGate:
    def __init__(self, cache: QueryCachePort):
        self.cache = cache

    async def run(
        self,
        key: Hashable,
        optimistic_update: Callable[[Any], Any],
        real_mutation: Callable[[], Awaitable[T]],
    ) -> T:
        await self.cache.cancel_queries(key)
        snapshot = copy.deepcopy(self.cache.get_query_data(key))
        self.cache.set_query_data(key, optimistic_update)

        try:
            result = await real_mutation()
            if isinstance(result, ServiceResult) and not result.success:
                raise MutationFailedError(result.error or "mutation failed", key)
        except Exception:
            logger.warning("Mutation for %s failed, restoring cached value", key)
            self.cache.set_query_data(key, lambda _current: snapshot)
            raise

        await self.cache.refetch_queries(key)
        return result
