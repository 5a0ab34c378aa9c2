"""Agent 的 schemaFields、promptMessages 与普通字段处理器."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from vibe_ops.logic.context import OperationContext
from vibe_ops.logic.path_matcher import MatchResult
from vibe_ops.logic.registry import ProcessorSpec
from vibe_ops.models import OperationResult
from vibe_ops.processors.helpers import (
    apply_append,
    apply_entry_field,
    apply_indexed,
    apply_scalar,
    collection_specs,
    ensure_list,
    ensure_path,
    finish,
    new_id,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def make_schema_field(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **data,
        "id": data.get("id") or new_id(),
        "name": data.get("name") or "newField",
        "type": data.get("type") or "string",
        "description": data.get("description") or "",
        "required": bool(data.get("required", False)),
        "defaultValue": data.get("defaultValue"),
    }


def make_prompt_block(data: Dict[str, Any], default_name: str) -> Dict[str, Any]:
    return {
        "id": data.get("id") or new_id(),
        "name": data.get("name") or default_name,
        "type": data.get("type") or "plain",
        "template": data.get("template") or data.get("content") or "",
        "isDeleteUnnecessaryCharacters": bool(data.get("isDeleteUnnecessaryCharacters", False)),
    }


def _blocks(data: Dict[str, Any], key: str, default_name: str) -> List[Dict[str, Any]]:
    raw = data.get(key) or []
    return [make_prompt_block(block if isinstance(block, dict) else {}, default_name) for block in raw]


def make_prompt_message(data: Dict[str, Any]) -> Dict[str, Any]:
    message: Dict[str, Any] = {
        "id": data.get("id") or new_id(),
        "type": data.get("type") or "plain",
        "enabled": data.get("enabled", True),
        "createdAt": data.get("createdAt") or _now(),
    }
    if message["type"] == "history":
        message.update(
            historyType=data.get("historyType") or "split",
            start=data.get("start", 0),
            end=data.get("end", 12),
            countFromEnd=data.get("countFromEnd", True),
            userPromptBlocks=_blocks(data, "userPromptBlocks", "User Block"),
            assistantPromptBlocks=_blocks(data, "assistantPromptBlocks", "Assistant Block"),
            userMessageRole=data.get("userMessageRole") or "user",
            charMessageRole=data.get("charMessageRole") or "assistant",
            subCharMessageRole=data.get("subCharMessageRole") or "user",
        )
    else:
        message.update(
            role=data.get("role") or "system",
            promptBlocks=_blocks(data, "promptBlocks", "Unnamed Block"),
        )
    return message


def _agent(context: OperationContext, match: MatchResult) -> Dict[str, Any]:
    return ensure_path(context.resource, "agents", match.groups["agent_id"])


def _collection_processors(key: str, factory) -> List[ProcessorSpec]:
    def append(context: OperationContext, match: MatchResult) -> OperationResult:
        items = ensure_list(_agent(context, match), key)
        return finish(context, apply_append(context, items, factory))

    def indexed(context: OperationContext, match: MatchResult) -> OperationResult:
        items = ensure_list(_agent(context, match), key)
        return finish(context, apply_indexed(context, items, match.groups["n"], factory))

    def field(context: OperationContext, match: MatchResult) -> OperationResult:
        items = ensure_list(_agent(context, match), key)
        failure = apply_entry_field(
            context, items, match.groups["n"], match.groups["field"], factory
        )
        return finish(context, failure)

    base = f"agents.{{agent_id}}.{key}"
    return [
        *collection_specs(base, append, f"Append agent {key} entry"),
        ProcessorSpec(f"{base}[{{n}}]", indexed, f"Replace or remove agent {key} entry"),
        ProcessorSpec(f"{base}[{{n}}].{{field}}", field, f"Update one agent {key} property"),
    ]


def agent_field(context: OperationContext, match: MatchResult) -> OperationResult:
    return finish(context, apply_scalar(context, _agent(context, match), match.groups["field"]))


def agent_processors() -> List[ProcessorSpec]:
    return [
        *_collection_processors("schemaFields", make_schema_field),
        *_collection_processors("promptMessages", make_prompt_message),
        ProcessorSpec("agents.{agent_id}.{field}", agent_field, "Set agent field"),
    ]
