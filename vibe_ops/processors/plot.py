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
    apply_scalar,
    collection_specs,
    ensure_list,
    ensure_path,
    finish,
)
from vibe_ops.processors.lorebook import lorebook_processors


def make_scenario(data: Dict[str, Any]) -> Dict[str, Any]:
    scenario = {"name": "New Scenario", "description": "", **data}
    if not scenario["name"]:
        scenario["name"] = "New Scenario"
    if scenario["description"] is None:
        scenario["description"] = ""
    return scenario


def _scenarios(context: OperationContext) -> List[Any]:
    return ensure_list(ensure_path(context.resource, "plot"), "scenarios")


def append_scenario(context: OperationContext, match: MatchResult) -> OperationResult:
    return finish(context, apply_append(context, _scenarios(context), make_scenario))


def indexed_scenario(context: OperationContext, match: MatchResult) -> OperationResult:
    return finish(
        context, apply_indexed(context, _scenarios(context), match.groups["n"], make_scenario)
    )


def scenario_field(context: OperationContext, match: MatchResult) -> OperationResult:
    failure = apply_entry_field(
        context, _scenarios(context), match.groups["n"], match.groups["field"], make_scenario
    )
    return finish(context, failure)


def plot_description(context: OperationContext, match: MatchResult) -> OperationResult:
    return finish(context, apply_scalar(context, ensure_path(context.resource, "plot"), "description"))


def plot_processors() -> List[ProcessorSpec]:
    return [
        *lorebook_processors("plot"),
        *collection_specs("plot.scenarios", append_scenario, "Append plot scenario"),
        ProcessorSpec("plot.scenarios[{n}]", indexed_scenario, "Replace or remove plot scenario"),
        ProcessorSpec("plot.scenarios[{n}].{field}", scenario_field, "Update one scenario field"),
        ProcessorSpec("plot.description", plot_description, "Set plot description"),
    ]
