"""节点类型与配色常量."""
from __future__ import annotations

NODE_TYPE_START = "start"
NODE_TYPE_END = "end"
NODE_TYPE_AGENT = "agent"
NODE_TYPE_DATA_STORE = "dataStore"
NODE_TYPE_IF = "if"

# 无后端实体的节点类型
STRUCTURAL_NODE_TYPES = frozenset({NODE_TYPE_START, NODE_TYPE_END})
SUPPORTED_NODE_TYPES = frozenset(
    {NODE_TYPE_START, NODE_TYPE_END, NODE_TYPE_AGENT, NODE_TYPE_DATA_STORE, NODE_TYPE_IF}
)

NODE_TYPE_LABELS = {
    NODE_TYPE_START: "Start",
    NODE_TYPE_END: "End",
    NODE_TYPE_AGENT: "Agent",
    NODE_TYPE_DATA_STORE: "Data Store",
    NODE_TYPE_IF: "If",
}

NODE_COLOR_PALETTE: tuple[str, ...] = (
    "#A5B4FC",
    "#FDBA74",
    "#BEF264",
    "#FCA5A5",
    "#93C5FD",
    "#FCD34D",
    "#67E8F9",
    "#F0ABFC",
    "#FDE047",
    "#C4B5FD",
    "#86EFAC",
    "#FDA4AF",
    "#7DD3FC",
    "#F9A8D4",
    "#6EE7B7",
    "#D8B4FE",
    "#5EEAD4",
)

DEFAULT_LOGIC_OPERATOR = "AND"
DEFAULT_AGENT_API_TYPE = "chat"

PERSONALITY_HEADING = "**Personality:**"
