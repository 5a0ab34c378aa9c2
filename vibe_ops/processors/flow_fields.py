"""flow 顶层字段与数据存储 schema 处理器；有 flow 服务时同步持久化."""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional

from vibe_ops.logic.context import OperationContext
from vibe_ops.logic.path_matcher import MatchResult
from vibe_ops.logic.registry import ProcessorSpec
from vibe_ops.models import OperationResult
from vibe_ops.processors.helpers import (
    apply_append,
    apply_entry_field,
    apply_indexed,
    as_mapping,
    collection_specs,
    ensure_list,
    ensure_path,
    invalid_value,
    maybe_parse_json,
    new_id,
    service_failure,
    unsupported,
)

_INITIAL_VALUES = {"number": "0", "integer": "0", "boolean": "false"}


def make_schema_field(data: Dict[str, Any]) -> Dict[str, Any]:
    field_type = data.get("type") or "string"
    initial = data.get("initialValue")
    return {
        **data,
        "id": data.get("id") or new_id(),
        "name": data.get("name") or "new_field",
        "type": field_type,
        "initialValue": _INITIAL_VALUES.get(field_type, "") if initial is None else initial,
        "description": data.get("description") or "",
    }


def _persistence_target(context: OperationContext) -> Optional[str]:
    if context.services.flow is None:
        return None
    return context.resolve_flow_id()


def _text_field_processor(field: str, updater_name: str) -> ProcessorSpec:
    async def handler(context: OperationContext, match: MatchResult) -> OperationResult:
        if context.operation not in ("set", "put"):
            return unsupported(context)
        value = context.value
        if not isinstance(value, str):
            return invalid_value(context, "a string")
        flow_id = _persistence_target(context)
        if flow_id:
            updater = getattr(context.services.flow, updater_name)
            result = await updater(flow_id, value)
            if not result.success:
                return service_failure(f"update flow {field}", result)
        ensure_path(context.resource, "flow")[field] = value
        return OperationResult.ok(context.resource)

    return ProcessorSpec(f"flow.{field}", handler, f"Set flow {field}")


async def _load_schema(context: OperationContext, flow_id: Optional[str]):
    """有持久化时以已存储的 schema 为准，否则使用内存副本."""
    if flow_id:
        result = await context.services.flow.get_flow(flow_id)
        if not result.success:
            return None, service_failure("load flow", result)
        stored = (result.value or {}).get("data_store_schema")
        if isinstance(stored, dict):
            return copy.deepcopy(stored), None
    local = ensure_path(context.resource, "flow").get("data_store_schema")
    return (copy.deepcopy(local) if isinstance(local, dict) else {}), None


async def _commit_schema(
    context: OperationContext, flow_id: Optional[str], schema: Dict[str, Any]
) -> OperationResult:
    if flow_id:
        result = await context.services.flow.update_data_store_schema(flow_id, schema)
        if not result.success:
            return service_failure("update data store schema", result)
    ensure_path(context.resource, "flow")["data_store_schema"] = schema
    return OperationResult.ok(context.resource)


async def set_data_store_schema(context: OperationContext, match: MatchResult) -> OperationResult:
    if context.operation not in ("set", "put"):
        return unsupported(context)
    schema = as_mapping(context.value)
    if schema is None:
        return invalid_value(context, "an object")
    schema = dict(schema)
    fields = maybe_parse_json(schema.get("fields"))
    schema["fields"] = [
        make_schema_field(item if isinstance(item, dict) else {})
        for item in (fields if isinstance(fields, list) else [])
    ]
    return await _commit_schema(context, _persistence_target(context), schema)


SchemaMutation = Callable[[OperationContext, List[Any], MatchResult], Optional[OperationResult]]


def _schema_processor(mutate: SchemaMutation):
    async def handler(context: OperationContext, match: MatchResult) -> OperationResult:
        flow_id = _persistence_target(context)
        schema, failure = await _load_schema(context, flow_id)
        if failure is not None:
            return failure
        fields = ensure_list(schema, "fields")
        failure = mutate(context, fields, match)
        if failure is not None:
            return failure
        return await _commit_schema(context, flow_id, schema)

    return handler


append_schema_field = _schema_processor(
    lambda context, fields, match: apply_append(context, fields, make_schema_field)
)
indexed_schema_field = _schema_processor(
    lambda context, fields, match: apply_indexed(
        context, fields, match.groups["n"], make_schema_field
    )
)
schema_field_property = _schema_processor(
    lambda context, fields, match: apply_entry_field(
        context, fields, match.groups["n"], match.groups["field"], make_schema_field
    )
)


def flow_field_processors() -> List[ProcessorSpec]:
    return [
        _text_field_processor("name", "update_flow_name"),
        _text_field_processor("response_template", "update_response_template"),
        ProcessorSpec("flow.data_store_schema", set_data_store_schema, "Replace data store schema"),
    ]


def flow_schema_processors() -> List[ProcessorSpec]:
    base = "flow.data_store_schema.fields"
    return [
        *collection_specs(base, append_schema_field, "Append data store schema field"),
        ProcessorSpec(f"{base}[{{n}}]", indexed_schema_field, "Replace or remove schema field"),
        ProcessorSpec(
            f"{base}[{{n}}].{{field}}", schema_field_property, "Update one schema field property"
        ),
    ]
