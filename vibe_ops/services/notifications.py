"""节点/连线变更的进程内广播，供 WebSocket 视图订阅."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Sequence, Set

logger = logging.getLogger(__name__)


class NodesEdgesNotifier:
    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[str, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, flow_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[flow_id].add(queue)
        return queue

    def unsubscribe(self, flow_id: str, queue: asyncio.Queue) -> None:
        subscribers = self._subscribers.get(flow_id)
        if not subscribers:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[flow_id]

    def subscriber_count(self, flow_id: str) -> int:
        return len(self._subscribers.get(flow_id, ()))

    def notify_nodes_edges_update(
        self,
        flow_id: str,
        nodes: Sequence[Dict[str, Any]],
        edges: Sequence[Dict[str, Any]],
    ) -> None:
        message: Dict[str, Any] = {"flow_id": flow_id, "nodes": list(nodes), "edges": list(edges)}
        for queue in list(self._subscribers.get(flow_id, ())):
            if queue.full():
                # 慢订阅者只保留最新状态
                queue.get_nowait()
            queue.put_nowait(message)
        logger.debug(
            "Broadcast %s nodes / %s edges for flow %s", len(nodes), len(edges), flow_id
        )
