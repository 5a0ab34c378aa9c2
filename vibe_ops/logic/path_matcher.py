"""路径模板编译与匹配.

模板写法:
    plot.scenarios[{n}].{field}
    agents.{agent_id}.promptMessages.append

`[{name}]` 为下标占位（只匹配非负整数），`{name}` 为字段占位（只匹配非数字段），
其余为字面段。匹配前把路径中的 `[k]` 归一化为 `.k` 再按 `.` 切分。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple

from vibe_ops.errors import PatternSyntaxError

_INDEX_SUFFIX = re.compile(r"\[(\d+)\]")
_INDEX_PLACEHOLDER = re.compile(r"^\[\{([A-Za-z_][A-Za-z0-9_]*)\}\]$")
_FIELD_PLACEHOLDER = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")
_LITERAL = re.compile(r"^[^\[\]{}.]+$")
# 段内的 `name[{n}]` 拆成 `name` 与 `[{n}]` 两段
_TEMPLATE_TOKEN = re.compile(r"\[\{[^}]*\}\]|[^.\[]+|\[[^\]]*\]")


class SegmentKind(str, Enum):
    LITERAL = "literal"
    INDEX = "index"
    FIELD = "field"


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    value: str

    def match(self, part: str) -> Tuple[bool, Any]:
        if self.kind is SegmentKind.LITERAL:
            return part == self.value, None
        if self.kind is SegmentKind.INDEX:
            if part.isdigit():
                return True, int(part)
            return False, None
        if not part or part.isdigit():
            return False, None
        return True, part


@dataclass(frozen=True)
class PathPattern:
    template: str
    segments: Tuple[Segment, ...]

    @property
    def specificity(self) -> int:
        return sum(1 for seg in self.segments if seg.kind is SegmentKind.LITERAL)

    def __str__(self) -> str:
        return self.template


@dataclass
class MatchResult:
    matches: bool
    groups: Dict[str, Any] = field(default_factory=dict)


NO_MATCH = MatchResult(matches=False)


def normalize_path(path: str) -> list[str]:
    """`a.b[2].c` -> ["a", "b", "2", "c"]."""
    normalized = _INDEX_SUFFIX.sub(r".\1", path.strip())
    return [part for part in normalized.split(".") if part != ""]


def compile_pattern(template: str) -> PathPattern:
    if not template or not template.strip():
        raise PatternSyntaxError("empty template", template)
    if template.count("{") != template.count("}"):
        raise PatternSyntaxError("unbalanced braces", template)

    segments: list[Segment] = []
    seen: set[str] = set()
    for raw in template.split("."):
        if not raw:
            raise PatternSyntaxError("empty segment", template)
        tokens = _TEMPLATE_TOKEN.findall(raw)
        if "".join(tokens) != raw:
            raise PatternSyntaxError(f"cannot parse segment {raw!r}", template)
        for token in tokens:
            segment = _compile_token(token, template)
            if segment.kind is not SegmentKind.LITERAL:
                if segment.value in seen:
                    raise PatternSyntaxError(
                        f"duplicate placeholder {segment.value!r}", template
                    )
                seen.add(segment.value)
            segments.append(segment)
    return PathPattern(template=template, segments=tuple(segments))


def _compile_token(token: str, template: str) -> Segment:
    index = _INDEX_PLACEHOLDER.match(token)
    if index:
        return Segment(SegmentKind.INDEX, index.group(1))
    placeholder = _FIELD_PLACEHOLDER.match(token)
    if placeholder:
        return Segment(SegmentKind.FIELD, placeholder.group(1))
    if _LITERAL.match(token):
        return Segment(SegmentKind.LITERAL, token)
    raise PatternSyntaxError(f"invalid token {token!r}", template)


def match_path(path: str, pattern: PathPattern) -> MatchResult:
    parts = normalize_path(path)
    if len(parts) != len(pattern.segments):
        return NO_MATCH
    groups: Dict[str, Any] = {}
    for part, segment in zip(parts, pattern.segments):
        ok, captured = segment.match(part)
        if not ok:
            return NO_MATCH
        if segment.kind is not SegmentKind.LITERAL:
            groups[segment.value] = captured
    return MatchResult(matches=True, groups=groups)
