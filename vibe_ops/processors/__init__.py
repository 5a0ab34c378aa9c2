"""各领域处理器，按固定顺序装配进默认注册表."""

from __future__ import annotations

from vibe_ops.logic.registry import ProcessorRegistry
from vibe_ops.processors.agent import agent_processors
from vibe_ops.processors.character import character_processors
from vibe_ops.processors.common import common_processors
from vibe_ops.processors.data_store_nodes import data_store_node_processors
from vibe_ops.processors.flow_fields import flow_field_processors, flow_schema_processors
from vibe_ops.processors.if_nodes import if_node_processors
from vibe_ops.processors.nodes_edges import node_edge_processors
from vibe_ops.processors.plot import plot_processors

PROCESSOR_GROUPS = (
    character_processors,
    plot_processors,
    common_processors,
    agent_processors,
    flow_field_processors,
    flow_schema_processors,
    node_edge_processors,
    data_store_node_processors,
    if_node_processors,
)


def build_default_registry() -> ProcessorRegistry:
    registry = ProcessorRegistry()
    for group in PROCESSOR_GROUPS:
        registry.register_all(group())
    return registry
