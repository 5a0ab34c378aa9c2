"""节点配色：优先使用次数最少的颜色，同频按调色板顺序."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Optional, Sequence

from vibe_ops.constants import (
    NODE_COLOR_PALETTE,
    NODE_TYPE_AGENT,
    NODE_TYPE_DATA_STORE,
    NODE_TYPE_IF,
)
from vibe_ops.storage.ports import (
    AgentServicePort,
    DataStoreNodeServicePort,
    IfNodeServicePort,
)

logger = logging.getLogger(__name__)


class NodeColorAssigner:
    def __init__(
        self,
        *,
        agents: Optional[AgentServicePort] = None,
        data_store_nodes: Optional[DataStoreNodeServicePort] = None,
        if_nodes: Optional[IfNodeServicePort] = None,
        palette: Sequence[str] = NODE_COLOR_PALETTE,
    ):
        if not palette:
            raise ValueError("palette must not be empty")
        self.palette = tuple(palette)
        self._services = {
            NODE_TYPE_AGENT: agents,
            NODE_TYPE_DATA_STORE: data_store_nodes,
            NODE_TYPE_IF: if_nodes,
        }

    async def get_next_available_color(self, flow: Dict[str, Any]) -> str:
        usage = Counter()
        for node in flow.get("nodes") or []:
            color = await self._color_of(node)
            if color in self.palette:
                usage[color] += 1
        return min(self.palette, key=lambda color: usage[color])

    async def _color_of(self, node: Dict[str, Any]) -> Optional[str]:
        service = self._services.get(node.get("type"))
        if service is not None and node.get("id"):
            try:
                result = await service.get(node["id"])
            except Exception:
                logger.warning("Reading color of node %s raised", node["id"], exc_info=True)
                return node.get("color")
            if result.success and isinstance(result.value, dict) and result.value.get("color"):
                return result.value["color"]
        return node.get("color")
