from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from vibe_ops.logic.retry import RetryPolicy
from vibe_ops.storage.ports import (
    AgentServicePort,
    ColorAssignmentPort,
    DataStoreNodeServicePort,
    FlowServicePort,
    IfNodeServicePort,
    NodesEdgesNotifierPort,
)


@dataclass
class EngineServices:
    """处理器可用的外部协作者；缺省为 None 时处理器只改动内存副本."""

    flow: Optional[FlowServicePort] = None
    data_store_nodes: Optional[DataStoreNodeServicePort] = None
    if_nodes: Optional[IfNodeServicePort] = None
    agents: Optional[AgentServicePort] = None
    colors: Optional[ColorAssignmentPort] = None
    notifier: Optional[NodesEdgesNotifierPort] = None
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy.from_config)


@dataclass
class OperationContext:
    path: str
    operation: str
    value: Any
    resource: Dict[str, Any]
    index: int = 0
    flow_id: Optional[str] = None
    services: EngineServices = field(default_factory=EngineServices)

    def resolve_flow_id(self) -> Optional[str]:
        if self.flow_id:
            return self.flow_id
        flow = self.resource.get("flow")
        if isinstance(flow, dict) and flow.get("id"):
            return str(flow["id"])
        return None
