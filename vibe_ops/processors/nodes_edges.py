from __future__ import annotations

from typing import List

from vibe_ops.logic.context import OperationContext
from vibe_ops.logic.node_creation import NodeCreationOrchestrator
from vibe_ops.logic.path_matcher import MatchResult
from vibe_ops.logic.registry import ProcessorSpec
from vibe_ops.models import OperationResult
from vibe_ops.processors.helpers import collection_specs, maybe_parse_json, unsupported


def _orchestrator(context: OperationContext) -> NodeCreationOrchestrator:
    return NodeCreationOrchestrator(context.services)


async def add_node(context: OperationContext, match: MatchResult) -> OperationResult:
    if context.operation != "put":
        return unsupported(context)
    return await _orchestrator(context).create_node(
        context.resource, maybe_parse_json(context.value), context.resolve_flow_id()
    )


async def add_edge(context: OperationContext, match: MatchResult) -> OperationResult:
    if context.operation != "put":
        return unsupported(context)
    return await _orchestrator(context).create_edge(
        context.resource, maybe_parse_json(context.value), context.resolve_flow_id()
    )


async def remove_node(context: OperationContext, match: MatchResult) -> OperationResult:
    if context.operation != "remove":
        return unsupported(context)
    return await _orchestrator(context).remove_node(
        context.resource, match.groups["n"], context.resolve_flow_id()
    )


async def remove_edge(context: OperationContext, match: MatchResult) -> OperationResult:
    if context.operation != "remove":
        return unsupported(context)
    return await _orchestrator(context).remove_edge(
        context.resource, match.groups["n"], context.resolve_flow_id()
    )


def node_edge_processors() -> List[ProcessorSpec]:
    return [
        *collection_specs("flow.nodes", add_node, "Create node through the creation saga"),
        ProcessorSpec("flow.nodes[{n}]", remove_node, "Remove node and its edges"),
        *collection_specs("flow.edges", add_edge, "Create edge between two nodes"),
        ProcessorSpec("flow.edges[{n}]", remove_edge, "Remove edge"),
    ]
