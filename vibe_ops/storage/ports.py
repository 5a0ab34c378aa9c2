from __future__ import annotations

from typing import Any, Callable, Hashable, Protocol, Sequence

from vibe_ops.models import ServiceResult


class FlowServicePort(Protocol):
    async def create_flow(self, *, name: str, flow_id: str | None = None) -> ServiceResult: ...

    async def get_flow(self, flow_id: str) -> ServiceResult: ...

    async def update_flow_name(self, flow_id: str, name: str) -> ServiceResult: ...

    async def update_response_template(
        self, flow_id: str, response_template: str
    ) -> ServiceResult: ...

    async def update_data_store_schema(
        self, flow_id: str, schema: dict[str, Any]
    ) -> ServiceResult: ...

    async def update_nodes_and_edges(
        self,
        flow_id: str,
        nodes: Sequence[dict[str, Any]],
        edges: Sequence[dict[str, Any]],
    ) -> ServiceResult: ...


class DataStoreNodeServicePort(Protocol):
    async def create(
        self,
        *,
        node_id: str,
        flow_id: str,
        name: str,
        color: str,
        data_store_fields: Sequence[dict[str, Any]] = (),
    ) -> ServiceResult: ...

    async def get(self, node_id: str) -> ServiceResult: ...

    async def update_fields(
        self, *, flow_id: str, node_id: str, fields: Sequence[dict[str, Any]]
    ) -> ServiceResult: ...

    async def update_name(self, *, flow_id: str, node_id: str, name: str) -> ServiceResult: ...

    async def update_color(self, *, flow_id: str, node_id: str, color: str) -> ServiceResult: ...

    async def delete(self, node_id: str) -> ServiceResult: ...


class IfNodeServicePort(Protocol):
    async def create(
        self,
        *,
        node_id: str,
        flow_id: str,
        name: str,
        color: str,
        conditions: Sequence[dict[str, Any]] = (),
        logic_operator: str = "AND",
    ) -> ServiceResult: ...

    async def get(self, node_id: str) -> ServiceResult: ...

    async def update_conditions(
        self, *, flow_id: str, node_id: str, conditions: Sequence[dict[str, Any]]
    ) -> ServiceResult: ...

    async def update_logic_operator(
        self, *, flow_id: str, node_id: str, logic_operator: str
    ) -> ServiceResult: ...

    async def delete(self, node_id: str) -> ServiceResult: ...


class AgentServicePort(Protocol):
    async def save(self, agent: dict[str, Any]) -> ServiceResult: ...

    async def get(self, agent_id: str) -> ServiceResult: ...

    async def delete(self, agent_id: str) -> ServiceResult: ...


class ColorAssignmentPort(Protocol):
    async def get_next_available_color(self, flow: dict[str, Any]) -> str: ...


class NodesEdgesNotifierPort(Protocol):
    def notify_nodes_edges_update(
        self,
        flow_id: str,
        nodes: Sequence[dict[str, Any]],
        edges: Sequence[dict[str, Any]],
    ) -> None: ...


class QueryCachePort(Protocol):
    async def cancel_queries(self, key: Hashable) -> None: ...

    def get_query_data(self, key: Hashable) -> Any: ...

    def set_query_data(self, key: Hashable, updater: Callable[[Any], Any]) -> None: ...

    async def refetch_queries(self, key: Hashable) -> None: ...

