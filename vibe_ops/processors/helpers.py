"""处理器共用的资源操作工具."""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from vibe_ops.logic.context import OperationContext
from vibe_ops.logic.registry import Handler, ProcessorSpec
from vibe_ops.models import ErrorKind, OperationResult, ServiceResult

_JSON_LIKE = re.compile(r"^[\[{].*[\]}]$", re.DOTALL)

EntryFactory = Callable[[Any], Dict[str, Any]]


def new_id() -> str:
    return str(uuid4())


def maybe_parse_json(value: Any) -> Any:
    """形如 JSON 的字符串尝试解析，失败时原样保留."""
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if not _JSON_LIKE.match(stripped):
        return value
    try:
        return json.loads(stripped)
    except ValueError:
        return value


def ensure_dict(parent: Dict[str, Any], key: str) -> Dict[str, Any]:
    current = parent.get(key)
    if not isinstance(current, dict):
        current = {}
        parent[key] = current
    return current


def ensure_list(parent: Dict[str, Any], key: str) -> List[Any]:
    current = parent.get(key)
    if not isinstance(current, list):
        current = []
        parent[key] = current
    return current


def ensure_path(resource: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    """逐级创建缺失的对象，返回最后一级."""
    current = resource
    for key in keys:
        current = ensure_dict(current, key)
    return current


def extend_to(items: List[Any], index: int, factory: EntryFactory) -> None:
    while len(items) <= index:
        items.append(factory({}))


def as_mapping(value: Any) -> Optional[Dict[str, Any]]:
    value = maybe_parse_json(value)
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    return None


def unsupported(context: OperationContext) -> OperationResult:
    return OperationResult.fail(
        f"Unsupported operation '{context.operation}' for {context.path}"
    )


def invalid_value(context: OperationContext, expected: str) -> OperationResult:
    return OperationResult.fail(f"Value for {context.path} must be {expected}")


def service_failure(action: str, result: ServiceResult) -> OperationResult:
    return OperationResult.fail(
        f"Failed to {action}: {result.error or 'unknown error'}",
        ErrorKind.SERVICE_CALL_FAILURE,
    )


def apply_append(
    context: OperationContext, items: List[Any], factory: EntryFactory
) -> Optional[OperationResult]:
    """put 追加一条规范化条目；返回 None 表示成功."""
    if context.operation != "put":
        return unsupported(context)
    data = as_mapping(context.value)
    if data is None:
        return invalid_value(context, "an object")
    items.append(factory(data))
    return None


def apply_indexed(
    context: OperationContext, items: List[Any], index: int, factory: EntryFactory
) -> Optional[OperationResult]:
    """put/set 在 index 处替换（不足时补默认条目），remove 删除；越界删除为空操作."""
    if context.operation == "remove":
        if index < len(items):
            del items[index]
        return None
    data = as_mapping(context.value)
    if data is None:
        return invalid_value(context, "an object")
    extend_to(items, index, factory)
    items[index] = factory(data)
    return None


def apply_entry_field(
    context: OperationContext,
    items: List[Any],
    index: int,
    field: str,
    factory: EntryFactory,
) -> Optional[OperationResult]:
    extend_to(items, index, factory)
    if not isinstance(items[index], dict):
        items[index] = factory({})
    entry = items[index]
    if context.operation == "remove":
        entry.pop(field, None)
    else:
        entry[field] = maybe_parse_json(context.value)
    return None


def apply_scalar(
    context: OperationContext, container: Dict[str, Any], field: str
) -> Optional[OperationResult]:
    if context.operation == "remove":
        container.pop(field, None)
    else:
        container[field] = maybe_parse_json(context.value)
    return None


def finish(context: OperationContext, failure: Optional[OperationResult]) -> OperationResult:
    return failure if failure is not None else OperationResult.ok(context.resource)


def collection_specs(base: str, handler: Handler, description: str) -> List[ProcessorSpec]:
    """追加处理器同时注册 `base.append` 与裸集合路径."""
    return [
        ProcessorSpec(f"{base}.append", handler, description),
        ProcessorSpec(base, handler, description),
    ]
