"""新建流程时补齐默认的 start / end 节点."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from vibe_ops.constants import NODE_TYPE_END, NODE_TYPE_START
from vibe_ops.errors import MutationFailedError
from vibe_ops.logic.cache_gate import OptimisticCacheGate
from vibe_ops.models import NodeDescriptor
from vibe_ops.services.query_cache import flow_query_key
from vibe_ops.storage.ports import FlowServicePort, NodesEdgesNotifierPort

logger = logging.getLogger(__name__)

END_NODE_X = 870.0


def default_structural_nodes() -> List[Dict[str, Any]]:
    start = NodeDescriptor(
        id=NODE_TYPE_START,
        type=NODE_TYPE_START,
        position={"x": 0.0, "y": 0.0},
        name="Start",
        data={},
        deletable=False,
    )
    end = NodeDescriptor(
        id=NODE_TYPE_END,
        type=NODE_TYPE_END,
        position={"x": END_NODE_X, "y": 0.0},
        name="End",
        data={},
        deletable=False,
    )
    return [node.model_dump(exclude_none=True) for node in (start, end)]


class StartNodeSeeder:
    def __init__(
        self,
        flow_service: FlowServicePort,
        gate: OptimisticCacheGate,
        notifier: Optional[NodesEdgesNotifierPort] = None,
    ):
        self.flow_service = flow_service
        self.gate = gate
        self.notifier = notifier

    async def seed(self, flow_id: str) -> Dict[str, Any]:
        loaded = await self.flow_service.get_flow(flow_id)
        if not loaded.success:
            raise MutationFailedError(loaded.error or f"flow {flow_id} not found", flow_id)
        flow = loaded.value
        nodes = list(flow.get("nodes") or [])
        edges = list(flow.get("edges") or [])
        if any(node.get("type") == NODE_TYPE_START for node in nodes):
            return flow

        present = {node.get("type") for node in nodes}
        seeded = nodes + [node for node in default_structural_nodes() if node["type"] not in present]

        def optimistic(current: Any) -> Any:
            base = dict(current) if isinstance(current, dict) else dict(flow)
            base["nodes"] = seeded
            return base

        await self.gate.run(
            flow_query_key(flow_id),
            optimistic,
            lambda: self.flow_service.update_nodes_and_edges(flow_id, seeded, edges),
        )
        logger.info("Seeded start/end nodes for flow %s", flow_id)
        if self.notifier is not None:
            self.notifier.notify_nodes_edges_update(flow_id, seeded, edges)
        return {**flow, "nodes": seeded}
