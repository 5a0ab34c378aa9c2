"""节点/连线创建流程：配色 -> 本地插入 -> 后端创建 -> 读后校验(重试) -> 持久化 -> 通知.

任一步骤失败只影响当前操作：本地插入被撤回，已创建的后端实体不做补偿。
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any, Awaitable, Dict, List, Optional

from pydantic import ValidationError

from vibe_ops import config
from vibe_ops.constants import (
    DEFAULT_AGENT_API_TYPE,
    DEFAULT_LOGIC_OPERATOR,
    NODE_COLOR_PALETTE,
    NODE_TYPE_AGENT,
    NODE_TYPE_DATA_STORE,
    NODE_TYPE_IF,
    NODE_TYPE_LABELS,
    STRUCTURAL_NODE_TYPES,
    SUPPORTED_NODE_TYPES,
)
from vibe_ops.logic.context import EngineServices
from vibe_ops.models import (
    EdgeDescriptor,
    ErrorKind,
    NodeDescriptor,
    OperationResult,
)

logger = logging.getLogger(__name__)


def default_agent(node_id: str, name: str, color: str, data: Dict[str, Any]) -> Dict[str, Any]:
    agent = {
        "id": node_id,
        "name": name,
        "description": "",
        "targetApiType": DEFAULT_AGENT_API_TYPE,
        "enabledStructuredOutput": False,
        "promptMessages": [],
        "schemaFields": [],
        "textPrompt": "",
        "color": color,
    }
    for key in ("description", "targetApiType", "promptMessages", "schemaFields", "textPrompt"):
        if data.get(key) is not None:
            agent[key] = data[key]
    return agent


def normalize_source_handle(value: Any) -> tuple[Optional[str], Optional[str]]:
    """if 节点的布尔分支转换为 handle 字符串与展示标签."""
    if value is True or value == "true":
        return "true", "True"
    if value is False or value == "false":
        return "false", "False"
    if value is None:
        return None, None
    return str(value), None


def edges_for_view(edges: List[Dict[str, Any]], default_type: str) -> List[Dict[str, Any]]:
    return [{**edge, "type": edge.get("type") or default_type} for edge in edges]


class NodeCreationOrchestrator:
    def __init__(
        self,
        services: EngineServices,
        *,
        default_edge_type: str = config.DEFAULT_EDGE_TYPE,
    ):
        self.services = services
        self.default_edge_type = default_edge_type

    async def create_node(
        self, resource: Dict[str, Any], value: Any, flow_id: Optional[str]
    ) -> OperationResult:
        if not isinstance(value, dict):
            return OperationResult.fail("Node value must be an object")
        node_id = value.get("id")
        node_type = value.get("nodeType") or value.get("type")
        if not node_id:
            return OperationResult.fail("Node id is required for node creation")
        if node_type not in SUPPORTED_NODE_TYPES:
            return OperationResult.fail(f"Unsupported node type: {node_type}")
        if not flow_id:
            return OperationResult.fail("Flow id is required for node creation")
        if self.services.flow is None:
            return OperationResult.fail("Flow service is not configured")

        flow = resource.setdefault("flow", {})
        nodes: List[Dict[str, Any]] = flow.setdefault("nodes", [])
        edges: List[Dict[str, Any]] = flow.setdefault("edges", [])
        if any(node.get("id") == node_id for node in nodes):
            return OperationResult.fail(f"Node {node_id} already exists in flow {flow_id}")

        color = value.get("color") or await self._assign_color(flow)
        name = value.get("name") or f"{NODE_TYPE_LABELS[node_type]} {str(node_id)[-8:]}"
        try:
            descriptor = NodeDescriptor(
                id=str(node_id),
                type=node_type,
                position=value.get("position") or {"x": 0.0, "y": 0.0},
                name=name,
                color=color,
                data={"flowId": flow_id}
                if node_type in (NODE_TYPE_DATA_STORE, NODE_TYPE_IF)
                else None,
            )
        except ValidationError as exc:
            return OperationResult.fail(f"Invalid node: {exc.errors()[0]['msg']}")

        nodes.append(descriptor.model_dump(exclude_none=True))
        seeded_agent = False
        if node_type == NODE_TYPE_AGENT:
            resource.setdefault("agents", {})[descriptor.id] = default_agent(
                descriptor.id, name, color, value
            )
            seeded_agent = True

        def rollback() -> None:
            flow["nodes"] = [node for node in nodes if node.get("id") != descriptor.id]
            if seeded_agent:
                resource.get("agents", {}).pop(descriptor.id, None)

        failure = None
        if node_type not in STRUCTURAL_NODE_TYPES:
            failure = await self._guard(
                self._create_backend_entity(node_type, descriptor, flow_id, resource, value),
                ErrorKind.SERVICE_CALL_FAILURE,
                f"create {node_type} node {descriptor.id}",
            )
            if failure is None:
                failure = await self._guard(
                    self._verify(node_type, descriptor.id),
                    ErrorKind.VERIFICATION_FAILURE,
                    f"verify {node_type} node {descriptor.id}",
                )
        if failure is None:
            failure = await self._persist(flow_id, flow["nodes"], edges)
        if failure is not None:
            rollback()
            return failure

        logger.info("Created %s node %s in flow %s", node_type, descriptor.id, flow_id)
        self._notify(flow_id, flow["nodes"], edges)
        return OperationResult.ok(resource)

    async def create_edge(
        self, resource: Dict[str, Any], value: Any, flow_id: Optional[str]
    ) -> OperationResult:
        if not isinstance(value, dict):
            return OperationResult.fail("Edge value must be an object")
        source, target = value.get("source"), value.get("target")
        if not source or not target:
            return OperationResult.fail("Edge requires source and target")
        if not flow_id:
            return OperationResult.fail("Flow id is required for edge creation")
        if self.services.flow is None:
            return OperationResult.fail("Flow service is not configured")

        flow = resource.setdefault("flow", {})
        nodes: List[Dict[str, Any]] = flow.setdefault("nodes", [])
        edges: List[Dict[str, Any]] = flow.setdefault("edges", [])
        if any(edge.get("source") == source and edge.get("target") == target for edge in edges):
            logger.info("Edge %s -> %s already exists, skipping", source, target)
            return OperationResult.ok(resource)

        handle, handle_label = normalize_source_handle(value.get("sourceHandle"))
        edge = EdgeDescriptor(
            id=value.get("id") or f"edge-{source}-{target}-{int(time.time() * 1000)}",
            source=source,
            target=target,
            sourceHandle=handle,
            targetHandle=value.get("targetHandle"),
            label=value.get("label") or handle_label,
            type=value.get("type") or self.default_edge_type,
        ).to_wire()
        edges.append(edge)

        failure = await self._persist(flow_id, nodes, edges)
        if failure is not None:
            edges.remove(edge)
            return failure
        self._notify(flow_id, nodes, edges)
        return OperationResult.ok(resource)

    async def remove_node(
        self, resource: Dict[str, Any], index: int, flow_id: Optional[str]
    ) -> OperationResult:
        flow = resource.setdefault("flow", {})
        nodes: List[Dict[str, Any]] = flow.setdefault("nodes", [])
        if index >= len(nodes):
            return OperationResult.fail(f"Node at index {index} not found")
        snapshot = copy.deepcopy((flow["nodes"], flow.get("edges", [])))

        removed = nodes.pop(index)
        removed_id = removed.get("id")
        flow["edges"] = [
            edge
            for edge in flow.get("edges", [])
            if edge.get("source") != removed_id and edge.get("target") != removed_id
        ]
        await self._delete_backend_entity(removed.get("type"), removed_id)

        failure = await self._persist_and_notify(flow_id, flow)
        if failure is not None:
            flow["nodes"], flow["edges"] = snapshot
        return failure or OperationResult.ok(resource)

    async def remove_edge(
        self, resource: Dict[str, Any], index: int, flow_id: Optional[str]
    ) -> OperationResult:
        flow = resource.setdefault("flow", {})
        edges: List[Dict[str, Any]] = flow.setdefault("edges", [])
        if index >= len(edges):
            return OperationResult.fail(f"Edge at index {index} not found")
        removed = edges.pop(index)
        failure = await self._persist_and_notify(flow_id, flow)
        if failure is not None:
            edges.insert(index, removed)
        return failure or OperationResult.ok(resource)

    async def _persist_and_notify(
        self, flow_id: Optional[str], flow: Dict[str, Any]
    ) -> Optional[OperationResult]:
        nodes, edges = flow.setdefault("nodes", []), flow.setdefault("edges", [])
        if flow_id and self.services.flow is not None:
            failure = await self._persist(flow_id, nodes, edges)
            if failure is not None:
                return failure
        if flow_id:
            self._notify(flow_id, nodes, edges)
        return None

    async def _persist(
        self, flow_id: str, nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]
    ) -> Optional[OperationResult]:
        try:
            persisted = await self.services.flow.update_nodes_and_edges(flow_id, nodes, edges)
        except Exception as exc:
            logger.warning("Persisting nodes and edges of flow %s raised", flow_id, exc_info=True)
            return OperationResult.fail(
                f"Failed to persist nodes and edges: {exc}", ErrorKind.PERSISTENCE_FAILURE
            )
        if not persisted.success:
            return OperationResult.fail(
                f"Failed to persist nodes and edges: {persisted.error}",
                ErrorKind.PERSISTENCE_FAILURE,
            )
        return None

    @staticmethod
    async def _guard(
        step: Awaitable[Optional[OperationResult]], kind: ErrorKind, action: str
    ) -> Optional[OperationResult]:
        """服务调用抛出的异常按所在步骤归类为失败结果."""
        try:
            return await step
        except Exception as exc:
            logger.warning("Failed to %s", action, exc_info=True)
            return OperationResult.fail(f"Failed to {action}: {exc}", kind)

    async def _assign_color(self, flow: Dict[str, Any]) -> str:
        if self.services.colors is None:
            return NODE_COLOR_PALETTE[0]
        return await self.services.colors.get_next_available_color(flow)

    async def _create_backend_entity(
        self,
        node_type: str,
        descriptor: NodeDescriptor,
        flow_id: str,
        resource: Dict[str, Any],
        value: Dict[str, Any],
    ) -> Optional[OperationResult]:
        service = self._service_for(node_type)
        if service is None:
            return OperationResult.fail(
                f"No service configured for {node_type} nodes", ErrorKind.SERVICE_CALL_FAILURE
            )
        if node_type == NODE_TYPE_DATA_STORE:
            result = await service.create(
                node_id=descriptor.id,
                flow_id=flow_id,
                name=descriptor.name,
                color=descriptor.color,
                data_store_fields=value.get("dataStoreFields") or [],
            )
        elif node_type == NODE_TYPE_IF:
            result = await service.create(
                node_id=descriptor.id,
                flow_id=flow_id,
                name=descriptor.name,
                color=descriptor.color,
                conditions=value.get("conditions") or [],
                logic_operator=value.get("logicOperator") or DEFAULT_LOGIC_OPERATOR,
            )
        else:
            result = await service.save(resource["agents"][descriptor.id])

        if not result.success:
            return OperationResult.fail(
                f"Failed to create {node_type} node {descriptor.id}: {result.error}",
                ErrorKind.SERVICE_CALL_FAILURE,
            )
        return None

    async def _verify(self, node_type: str, node_id: str) -> Optional[OperationResult]:
        service = self._service_for(node_type)

        async def attempt() -> bool:
            try:
                result = await service.get(node_id)
            except Exception:
                logger.warning("Reading back %s node %s raised", node_type, node_id, exc_info=True)
                return False
            return result.success and result.value is not None

        verified = await self.services.retry_policy.run(attempt, label=f"verify {node_type} {node_id}")
        if not verified:
            logger.warning("Verification failed for %s node %s", node_type, node_id)
            return OperationResult.fail(
                f"Created {node_type} node {node_id} could not be read back",
                ErrorKind.VERIFICATION_FAILURE,
            )
        return None

    async def _delete_backend_entity(self, node_type: Optional[str], node_id: Optional[str]) -> None:
        service = self._service_for(node_type)
        if service is None or not node_id:
            return
        try:
            result = await service.delete(node_id)
        except Exception:
            logger.warning("Deleting %s entity %s raised", node_type, node_id, exc_info=True)
            return
        if not result.success:
            logger.warning("Could not delete %s entity %s: %s", node_type, node_id, result.error)

    def _service_for(self, node_type: Optional[str]) -> Any:
        return {
            NODE_TYPE_AGENT: self.services.agents,
            NODE_TYPE_DATA_STORE: self.services.data_store_nodes,
            NODE_TYPE_IF: self.services.if_nodes,
        }.get(node_type or "")

    def _notify(self, flow_id: str, nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]) -> None:
        if self.services.notifier is None:
            return
        self.services.notifier.notify_nodes_edges_update(
            flow_id, list(nodes), edges_for_view(edges, self.default_edge_type)
        )
