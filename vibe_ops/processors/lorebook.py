"""角色与剧情共用的 lorebook 条目处理器."""

from __future__ import annotations

from typing import Any, Dict, List

from vibe_ops.logic.context import OperationContext
from vibe_ops.logic.path_matcher import MatchResult
from vibe_ops.logic.registry import ProcessorSpec
from vibe_ops.models import OperationResult
from vibe_ops.processors.helpers import (
    apply_append,
    apply_entry_field,
    apply_indexed,
    collection_specs,
    ensure_list,
    ensure_path,
    finish,
    new_id,
)

DEFAULT_RECALL_RANGE = 1000


def make_lorebook_entry(data: Dict[str, Any]) -> Dict[str, Any]:
    entry = {
        "name": "New Entry",
        "enabled": True,
        "keys": [],
        "recallRange": DEFAULT_RECALL_RANGE,
        "content": "",
        **data,
    }
    entry["id"] = data.get("id") or new_id()
    if not isinstance(entry["keys"], list):
        entry["keys"] = [entry["keys"]]
    return entry


def _entries(context: OperationContext, root: str) -> List[Any]:
    lorebook = ensure_path(context.resource, root, "lorebook")
    return ensure_list(lorebook, "entries")


def lorebook_processors(root: str) -> List[ProcessorSpec]:
    def append_entry(context: OperationContext, match: MatchResult) -> OperationResult:
        return finish(context, apply_append(context, _entries(context, root), make_lorebook_entry))

    def indexed_entry(context: OperationContext, match: MatchResult) -> OperationResult:
        failure = apply_indexed(
            context, _entries(context, root), match.groups["n"], make_lorebook_entry
        )
        return finish(context, failure)

    def entry_field(context: OperationContext, match: MatchResult) -> OperationResult:
        failure = apply_entry_field(
            context,
            _entries(context, root),
            match.groups["n"],
            match.groups["field"],
            make_lorebook_entry,
        )
        return finish(context, failure)

    base = f"{root}.lorebook.entries"
    return [
        *collection_specs(base, append_entry, f"Append {root} lorebook entry"),
        ProcessorSpec(f"{base}[{{n}}]", indexed_entry, f"Replace or remove {root} lorebook entry"),
        ProcessorSpec(
            f"{base}[{{n}}].{{field}}", entry_field, f"Update one field of a {root} lorebook entry"
        ),
    ]
