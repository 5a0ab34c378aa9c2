from __future__ import annotations

from typing import List

from vibe_ops.logic.context import OperationContext
from vibe_ops.logic.path_matcher import MatchResult
from vibe_ops.logic.registry import ProcessorSpec
from vibe_ops.models import OperationResult
from vibe_ops.processors.helpers import apply_scalar, ensure_path, finish
from vibe_ops.processors.lorebook import lorebook_processors

CHARACTER_FIELDS = ("name", "description", "greeting", "example_dialogue")


def _field_processor(field: str) -> ProcessorSpec:
    def handler(context: OperationContext, match: MatchResult) -> OperationResult:
        character = ensure_path(context.resource, "character")
        return finish(context, apply_scalar(context, character, field))

    return ProcessorSpec(f"character.{field}", handler, f"Set character {field}")


def character_processors() -> List[ProcessorSpec]:
    return [
        *lorebook_processors("character"),
        *(_field_processor(field) for field in CHARACTER_FIELDS),
    ]
