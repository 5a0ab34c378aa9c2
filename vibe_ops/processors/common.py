from __future__ import annotations

from typing import List

from vibe_ops.logic.context import OperationContext
from vibe_ops.logic.path_matcher import MatchResult
from vibe_ops.logic.registry import ProcessorSpec
from vibe_ops.models import OperationResult
from vibe_ops.processors.helpers import apply_scalar, ensure_path, finish


def common_title(context: OperationContext, match: MatchResult) -> OperationResult:
    return finish(context, apply_scalar(context, ensure_path(context.resource, "common"), "title"))


def common_processors() -> List[ProcessorSpec]:
    return [ProcessorSpec("common.title", common_title, "Set resource title")]
