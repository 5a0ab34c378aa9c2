"""Kùzu Graph 存储封装，用于持久化流程聚合."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence
from uuid import uuid4

import kuzu

from vibe_ops.models import ServiceResult

logger = logging.getLogger(__name__)

_FLOW_COLUMNS = "f.id, f.name, f.response_template, f.data_store_schema, f.nodes, f.edges"


class GraphFlowStore:
    """流程服务：名称、响应模板、数据 schema、节点与连线；嵌套结构以 JSON 字符串存储.

    kuzu 为嵌入式库，查询在事件循环内同步执行，单连接串行访问。
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db = kuzu.Database(str(self.db_path))
        self.conn = kuzu.Connection(self.db)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.conn.execute(
            """
            CREATE NODE TABLE IF NOT EXISTS Flow(
                id STRING,
                name STRING,
                response_template STRING,
                data_store_schema STRING,
                nodes STRING,
                edges STRING,
                PRIMARY KEY (id)
            );
            """
        )

    async def create_flow(self, *, name: str, flow_id: str | None = None) -> ServiceResult:
        flow_id = flow_id or str(uuid4())
        if self._fetch(flow_id) is not None:
            return ServiceResult.fail(f"flow {flow_id} already exists")
        self.conn.execute(
            "CREATE (:Flow {id: $id, name: $name, response_template: $template, "
            "data_store_schema: $schema, nodes: $nodes, edges: $edges});",
            {
                "id": flow_id,
                "name": name,
                "template": "",
                "schema": json.dumps({"fields": []}),
                "nodes": "[]",
                "edges": "[]",
            },
        )
        logger.info("Created flow %s", flow_id)
        return ServiceResult.ok(self._fetch(flow_id))

    async def get_flow(self, flow_id: str) -> ServiceResult:
        flow = self._fetch(flow_id)
        if flow is None:
            return ServiceResult.fail(f"flow {flow_id} not found")
        return ServiceResult.ok(flow)

    async def update_flow_name(self, flow_id: str, name: str) -> ServiceResult:
        return self._set(flow_id, "name", name)

    async def update_response_template(self, flow_id: str, response_template: str) -> ServiceResult:
        return self._set(flow_id, "response_template", response_template)

    async def update_data_store_schema(
        self, flow_id: str, schema: Dict[str, Any]
    ) -> ServiceResult:
        return self._set(flow_id, "data_store_schema", json.dumps(schema))

    async def update_nodes_and_edges(
        self,
        flow_id: str,
        nodes: Sequence[Dict[str, Any]],
        edges: Sequence[Dict[str, Any]],
    ) -> ServiceResult:
        if self._fetch(flow_id) is None:
            return ServiceResult.fail(f"flow {flow_id} not found")
        self.conn.execute(
            "MATCH (f:Flow) WHERE f.id = $id SET f.nodes = $nodes, f.edges = $edges;",
            {"id": flow_id, "nodes": json.dumps(list(nodes)), "edges": json.dumps(list(edges))},
        )
        return ServiceResult.ok(self._fetch(flow_id))

    def count_flows(self) -> int:
        result = self.conn.execute("MATCH (f:Flow) RETURN COUNT(*)")
        return result.get_next()[0] if result.has_next() else 0

    def _set(self, flow_id: str, column: str, value: str) -> ServiceResult:
        if self._fetch(flow_id) is None:
            return ServiceResult.fail(f"flow {flow_id} not found")
        self.conn.execute(
            f"MATCH (f:Flow) WHERE f.id = $id SET f.{column} = $value;",
            {"id": flow_id, "value": value},
        )
        return ServiceResult.ok(self._fetch(flow_id))

    def _fetch(self, flow_id: str) -> Optional[Dict[str, Any]]:
        result = self.conn.execute(
            f"MATCH (f:Flow) WHERE f.id = $id RETURN {_FLOW_COLUMNS};", {"id": flow_id}
        )
        if not result.has_next():
            return None
        flow_id, name, template, schema, nodes, edges = result.get_next()
        return {
            "id": flow_id,
            "name": name,
            "response_template": template or "",
            "data_store_schema": json.loads(schema) if schema else {"fields": []},
            "nodes": json.loads(nodes) if nodes else [],
            "edges": json.loads(edges) if edges else [],
        }
