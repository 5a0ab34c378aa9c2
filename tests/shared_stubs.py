"""共享测试 stub，所有测试文件应从此处导入，避免接口漂移。"""
from __future__ import annotations

import copy
from typing import Any, Dict, List

from vibe_ops.logic.context import EngineServices
from vibe_ops.logic.retry import RetryPolicy
from vibe_ops.models import ServiceResult
from vibe_ops.storage.memory import (
    InMemoryAgentService,
    InMemoryDataStoreNodeService,
    InMemoryIfNodeService,
)


class StubFlowService:
    def __init__(self, flows: Dict[str, Dict[str, Any]] | None = None, fail_updates: bool = False):
        self.flows = flows or {}
        self.fail_updates = fail_updates
        self.calls: List[tuple] = []

    async def create_flow(self, *, name: str, flow_id: str | None = None) -> ServiceResult:
        flow_id = flow_id or f"flow-{len(self.flows) + 1}"
        self.flows[flow_id] = {
            "id": flow_id,
            "name": name,
            "response_template": "",
            "data_store_schema": {"fields": []},
            "nodes": [],
            "edges": [],
        }
        return ServiceResult.ok(copy.deepcopy(self.flows[flow_id]))

    async def get_flow(self, flow_id: str) -> ServiceResult:
        if flow_id not in self.flows:
            return ServiceResult.fail(f"flow {flow_id} not found")
        return ServiceResult.ok(copy.deepcopy(self.flows[flow_id]))

    async def update_flow_name(self, flow_id: str, name: str) -> ServiceResult:
        return self._update(flow_id, "name", name)

    async def update_response_template(self, flow_id: str, response_template: str) -> ServiceResult:
        return self._update(flow_id, "response_template", response_template)

    async def update_data_store_schema(self, flow_id: str, schema: Dict[str, Any]) -> ServiceResult:
        return self._update(flow_id, "data_store_schema", schema)

    async def update_nodes_and_edges(self, flow_id, nodes, edges) -> ServiceResult:
        self.calls.append(("update_nodes_and_edges", flow_id))
        if self.fail_updates:
            return ServiceResult.fail("storage offline")
        flow = self.flows.setdefault(flow_id, {"id": flow_id})
        flow["nodes"] = copy.deepcopy(list(nodes))
        flow["edges"] = copy.deepcopy(list(edges))
        return ServiceResult.ok(copy.deepcopy(flow))

    def _update(self, flow_id: str, key: str, value: Any) -> ServiceResult:
        self.calls.append((key, flow_id))
        if self.fail_updates:
            return ServiceResult.fail("storage offline")
        if flow_id not in self.flows:
            return ServiceResult.fail(f"flow {flow_id} not found")
        self.flows[flow_id][key] = copy.deepcopy(value)
        return ServiceResult.ok(copy.deepcopy(self.flows[flow_id]))


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []

    def notify_nodes_edges_update(self, flow_id, nodes, edges) -> None:
        self.messages.append({"flow_id": flow_id, "nodes": list(nodes), "edges": list(edges)})


class InvisibleDataStoreNodeService(InMemoryDataStoreNodeService):
    """create 成功但读不回来，用于覆盖校验失败分支。"""

    def __init__(self) -> None:
        super().__init__()
        self.get_calls = 0

    async def get(self, entity_id: str) -> ServiceResult:
        self.get_calls += 1
        return ServiceResult.fail("not visible yet")


class EventuallyVisibleIfNodeService(InMemoryIfNodeService):
    """第一次读取失败，之后正常。"""

    def __init__(self) -> None:
        super().__init__()
        self.get_calls = 0

    async def get(self, entity_id: str) -> ServiceResult:
        self.get_calls += 1
        if self.get_calls == 1:
            return ServiceResult.fail("replica lag")
        return await super().get(entity_id)


def build_flow_resource(flow_id: str = "flow-1", **flow_fields: Any) -> Dict[str, Any]:
    flow = {"id": flow_id, "name": "Test flow", "nodes": [], "edges": []}
    flow.update(flow_fields)
    return {"flow": flow}


def build_services(**overrides: Any) -> EngineServices:
    services = EngineServices(
        flow=StubFlowService({"flow-1": {"id": "flow-1", "nodes": [], "edges": []}}),
        data_store_nodes=InMemoryDataStoreNodeService(),
        if_nodes=InMemoryIfNodeService(),
        agents=InMemoryAgentService(),
        notifier=RecordingNotifier(),
        retry_policy=RetryPolicy.no_delay(),
    )
    for key, value in overrides.items():
        setattr(services, key, value)
    return services
