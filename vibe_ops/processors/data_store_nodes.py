"""数据存储节点处理器；有 flow id 与服务时经服务写入，否则只改内存副本."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from vibe_ops.constants import NODE_COLOR_PALETTE
from vibe_ops.logic.context import OperationContext
from vibe_ops.logic.path_matcher import MatchResult
from vibe_ops.logic.registry import ProcessorSpec
from vibe_ops.models import OperationResult
from vibe_ops.processors.helpers import (
    apply_append,
    apply_indexed,
    apply_scalar,
    as_mapping,
    ensure_list,
    ensure_path,
    finish,
    invalid_value,
    maybe_parse_json,
    new_id,
    service_failure,
)
from vibe_ops.storage.ports import DataStoreNodeServicePort


def make_data_store_field(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **data,
        "id": data.get("id") or new_id(),
        "schemaFieldId": data.get("schemaFieldId"),
        "logic": data.get("logic") or "",
    }


def _service(context: OperationContext) -> Tuple[Optional[DataStoreNodeServicePort], Optional[str]]:
    service = context.services.data_store_nodes
    flow_id = context.resolve_flow_id()
    if service is None or not flow_id:
        return None, None
    return service, flow_id


def _node(context: OperationContext, match: MatchResult) -> Dict[str, Any]:
    return ensure_path(context.resource, "dataStoreNodes", match.groups["node_id"])


async def data_store_node(context: OperationContext, match: MatchResult) -> OperationResult:
    node_id = match.groups["node_id"]
    nodes = ensure_path(context.resource, "dataStoreNodes")
    service, flow_id = _service(context)

    if context.operation == "remove":
        if service is not None:
            result = await service.delete(node_id)
            if not result.success:
                return service_failure("delete data store node", result)
        nodes.pop(node_id, None)
        return OperationResult.ok(context.resource)

    value = as_mapping(context.value)
    if value is None:
        return invalid_value(context, "an object")
    value = dict(value)
    raw_fields = maybe_parse_json(value.get("dataStoreFields"))
    value["dataStoreFields"] = [
        make_data_store_field(item if isinstance(item, dict) else {})
        for item in (raw_fields if isinstance(raw_fields, list) else [])
    ]
    if service is not None:
        result = await service.create(
            node_id=node_id,
            flow_id=flow_id,
            name=value.get("name") or "Data Store Node",
            color=value.get("color") or NODE_COLOR_PALETTE[0],
            data_store_fields=value["dataStoreFields"],
        )
        if not result.success:
            return service_failure("create data store node", result)
    nodes[node_id] = value
    return OperationResult.ok(context.resource)


async def data_store_node_field(context: OperationContext, match: MatchResult) -> OperationResult:
    node = _node(context, match)
    field = match.groups["field"]
    if field == "dataStoreFields" and context.operation != "remove":
        value = maybe_parse_json(context.value)
        if isinstance(value, list):
            fields = [make_data_store_field(item if isinstance(item, dict) else {}) for item in value]
            return await _sync_fields(context, match, fields)
        if context.operation == "put":
            return await append_data_store_field(context, match)
        return invalid_value(context, "a list of fields")

    service, flow_id = _service(context)
    if service is not None and context.operation != "remove":
        node_id = match.groups["node_id"]
        if field == "name":
            result = await service.update_name(flow_id=flow_id, node_id=node_id, name=context.value)
        elif field == "color":
            result = await service.update_color(flow_id=flow_id, node_id=node_id, color=context.value)
        else:
            result = None
        if result is not None and not result.success:
            return service_failure(f"update data store node {field}", result)
    return finish(context, apply_scalar(context, node, field))


async def _sync_fields(
    context: OperationContext, match: MatchResult, fields: List[Any]
) -> OperationResult:
    service, flow_id = _service(context)
    if service is not None:
        result = await service.update_fields(
            flow_id=flow_id, node_id=match.groups["node_id"], fields=fields
        )
        if not result.success:
            return service_failure("update data store fields", result)
    _node(context, match)["dataStoreFields"] = fields
    return OperationResult.ok(context.resource)


async def append_data_store_field(context: OperationContext, match: MatchResult) -> OperationResult:
    fields = list(ensure_list(_node(context, match), "dataStoreFields"))
    failure = apply_append(context, fields, make_data_store_field)
    if failure is not None:
        return failure
    return await _sync_fields(context, match, fields)


async def indexed_data_store_field(context: OperationContext, match: MatchResult) -> OperationResult:
    fields = list(ensure_list(_node(context, match), "dataStoreFields"))
    failure = apply_indexed(context, fields, match.groups["n"], make_data_store_field)
    if failure is not None:
        return failure
    return await _sync_fields(context, match, fields)


def data_store_node_processors() -> List[ProcessorSpec]:
    base = "dataStoreNodes.{node_id}.dataStoreFields"
    return [
        ProcessorSpec(f"{base}.append", append_data_store_field, "Append data store node field"),
        ProcessorSpec(f"{base}[{{n}}]", indexed_data_store_field, "Replace or remove data store node field"),
        ProcessorSpec("dataStoreNodes.{node_id}", data_store_node, "Set or remove data store node"),
        ProcessorSpec("dataStoreNodes.{node_id}.{field}", data_store_node_field, "Set data store node field"),
    ]
