"""进程内实体服务，实现数据存储节点 / if 节点 / agent 的 Result 契约."""

from __future__ import annotations

import copy
from typing import Any, Dict, Sequence

from vibe_ops.constants import DEFAULT_LOGIC_OPERATOR
from vibe_ops.models import ServiceResult


class _EntityStore:
    kind = "entity"

    def __init__(self) -> None:
        self._items: Dict[str, Dict[str, Any]] = {}

    async def get(self, entity_id: str) -> ServiceResult:
        item = self._items.get(entity_id)
        if item is None:
            return ServiceResult.fail(f"{self.kind} {entity_id} not found")
        return ServiceResult.ok(copy.deepcopy(item))

    async def delete(self, entity_id: str) -> ServiceResult:
        if self._items.pop(entity_id, None) is None:
            return ServiceResult.fail(f"{self.kind} {entity_id} not found")
        return ServiceResult.ok()

    def _update(self, entity_id: str, **changes: Any) -> ServiceResult:
        item = self._items.get(entity_id)
        if item is None:
            return ServiceResult.fail(f"{self.kind} {entity_id} not found")
        item.update(copy.deepcopy(changes))
        return ServiceResult.ok(copy.deepcopy(item))


class InMemoryDataStoreNodeService(_EntityStore):
    kind = "data store node"

    async def create(
        self,
        *,
        node_id: str,
        flow_id: str,
        name: str,
        color: str,
        data_store_fields: Sequence[Dict[str, Any]] = (),
    ) -> ServiceResult:
        self._items[node_id] = {
            "id": node_id,
            "flowId": flow_id,
            "name": name,
            "color": color,
            "dataStoreFields": copy.deepcopy(list(data_store_fields)),
        }
        return ServiceResult.ok(copy.deepcopy(self._items[node_id]))

    async def update_fields(
        self, *, flow_id: str, node_id: str, fields: Sequence[Dict[str, Any]]
    ) -> ServiceResult:
        return self._update(node_id, dataStoreFields=list(fields))

    async def update_name(self, *, flow_id: str, node_id: str, name: str) -> ServiceResult:
        return self._update(node_id, name=name)

    async def update_color(self, *, flow_id: str, node_id: str, color: str) -> ServiceResult:
        return self._update(node_id, color=color)


class InMemoryIfNodeService(_EntityStore):
    kind = "if node"

    async def create(
        self,
        *,
        node_id: str,
        flow_id: str,
        name: str,
        color: str,
        conditions: Sequence[Dict[str, Any]] = (),
        logic_operator: str = DEFAULT_LOGIC_OPERATOR,
    ) -> ServiceResult:
        self._items[node_id] = {
            "id": node_id,
            "flowId": flow_id,
            "name": name,
            "color": color,
            "conditions": copy.deepcopy(list(conditions)),
            "logicOperator": logic_operator,
        }
        return ServiceResult.ok(copy.deepcopy(self._items[node_id]))

    async def update_conditions(
        self, *, flow_id: str, node_id: str, conditions: Sequence[Dict[str, Any]]
    ) -> ServiceResult:
        return self._update(node_id, conditions=list(conditions))

    async def update_logic_operator(
        self, *, flow_id: str, node_id: str, logic_operator: str
    ) -> ServiceResult:
        return self._update(node_id, logicOperator=logic_operator)


class InMemoryAgentService(_EntityStore):
    kind = "agent"

    async def save(self, agent: Dict[str, Any]) -> ServiceResult:
        agent_id = agent.get("id")
        if not agent_id:
            return ServiceResult.fail("agent id is required")
        self._items[agent_id] = copy.deepcopy(agent)
        return ServiceResult.ok(copy.deepcopy(agent))
