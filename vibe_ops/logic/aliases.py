"""旧路径到规范路径的改写."""

from __future__ import annotations

from typing import Any, Dict

from vibe_ops.constants import PERSONALITY_HEADING
from vibe_ops.models import Operation

RENAMED_PATHS = {
    "character.first_mes": "character.example_dialogue",
    "character.mes_example": "character.example_dialogue",
}
PERSONALITY_PATH = "character.personality"
DESCRIPTION_PATH = "character.description"


def rewrite_alias(operation: Operation, resource: Dict[str, Any]) -> Operation:
    renamed = RENAMED_PATHS.get(operation.path)
    if renamed is not None:
        return operation.model_copy(update={"path": renamed})

    if operation.path == PERSONALITY_PATH and operation.operation == "set":
        character = resource.get("character")
        description = character.get("description") if isinstance(character, dict) else None
        # 没有描述可并入时保持原路径
        if isinstance(description, str) and description:
            merged = f"{description}\n\n{PERSONALITY_HEADING}\n{operation.value}"
            return operation.model_copy(update={"path": DESCRIPTION_PATH, "value": merged})

    return operation
