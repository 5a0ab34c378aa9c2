"""条件分支节点处理器."""

from __future__ import annotations

from typing import Any, Dict, List

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


def make_condition(data: Dict[str, Any]) -> Dict[str, Any]:
    # dataType / operator 为空表示尚未配置的条件
    return {
        "id": data.get("id") or new_id(),
        "dataType": data.get("dataType") or None,
        "value1": data.get("value1") or "",
        "operator": data.get("operator") or None,
        "value2": data.get("value2") or "",
    }


def _node(context: OperationContext, match: MatchResult) -> Dict[str, Any]:
    return ensure_path(context.resource, "ifNodes", match.groups["node_id"])


async def _sync_conditions(
    context: OperationContext, match: MatchResult, conditions: List[Any]
) -> OperationResult:
    service = context.services.if_nodes
    flow_id = context.resolve_flow_id()
    if service is not None and flow_id:
        result = await service.update_conditions(
            flow_id=flow_id, node_id=match.groups["node_id"], conditions=conditions
        )
        if not result.success:
            return service_failure("update if-node conditions", result)
    _node(context, match)["conditions"] = conditions
    return OperationResult.ok(context.resource)


async def append_condition(context: OperationContext, match: MatchResult) -> OperationResult:
    conditions = list(ensure_list(_node(context, match), "conditions"))
    failure = apply_append(context, conditions, make_condition)
    if failure is not None:
        return failure
    return await _sync_conditions(context, match, conditions)


async def indexed_condition(context: OperationContext, match: MatchResult) -> OperationResult:
    conditions = list(ensure_list(_node(context, match), "conditions"))
    failure = apply_indexed(context, conditions, match.groups["n"], make_condition)
    if failure is not None:
        return failure
    return await _sync_conditions(context, match, conditions)


def if_node(context: OperationContext, match: MatchResult) -> OperationResult:
    nodes = ensure_path(context.resource, "ifNodes")
    node_id = match.groups["node_id"]
    if context.operation == "remove":
        nodes.pop(node_id, None)
        return OperationResult.ok(context.resource)
    value = as_mapping(context.value)
    if value is None:
        return invalid_value(context, "an object")
    nodes[node_id] = dict(value)
    return OperationResult.ok(context.resource)


async def if_node_field(context: OperationContext, match: MatchResult) -> OperationResult:
    field = match.groups["field"]
    node = _node(context, match)
    if context.operation == "remove":
        return finish(context, apply_scalar(context, node, field))

    if field == "conditions":
        value = maybe_parse_json(context.value)
        items = value if isinstance(value, list) else [value]
        return await _sync_conditions(
            context, match, [make_condition(item) if isinstance(item, dict) else item for item in items]
        )

    if field == "logicOperator":
        service = context.services.if_nodes
        flow_id = context.resolve_flow_id()
        if service is not None and flow_id:
            result = await service.update_logic_operator(
                flow_id=flow_id, node_id=match.groups["node_id"], logic_operator=context.value
            )
            if not result.success:
                return service_failure("update if-node logic operator", result)
    return finish(context, apply_scalar(context, node, field))


def if_node_processors() -> List[ProcessorSpec]:
    base = "ifNodes.{node_id}.conditions"
    return [
        ProcessorSpec(f"{base}.append", append_condition, "Append if-node condition"),
        ProcessorSpec(f"{base}[{{n}}]", indexed_condition, "Replace or remove if-node condition"),
        ProcessorSpec("ifNodes.{node_id}", if_node, "Set or remove if node"),
        ProcessorSpec("ifNodes.{node_id}.{field}", if_node_field, "Set if node field"),
    ]
