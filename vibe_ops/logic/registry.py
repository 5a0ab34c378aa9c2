"""处理器注册表：模板到处理函数的有序映射."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, Union

from vibe_ops.errors import DuplicateProcessorError
from vibe_ops.logic.path_matcher import MatchResult, PathPattern, compile_pattern, match_path
from vibe_ops.models import OperationResult

logger = logging.getLogger(__name__)

Handler = Callable[..., Union[OperationResult, Awaitable[OperationResult]]]


@dataclass(frozen=True)
class ProcessorEntry:
    pattern: PathPattern
    handler: Any
    description: str


@dataclass(frozen=True)
class ProcessorSpec:
    """领域模块导出的注册项，由 build_default_registry 统一装配."""

    template: str
    handler: Handler
    description: str


class ProcessorRegistry:
    """有序注册表；多个模板命中时取字面段最多者，相同则按注册顺序."""

    def __init__(self) -> None:
        self._entries: List[ProcessorEntry] = []
        self._templates: set[str] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def register_processor(
        self, pattern: str | PathPattern, handler: Handler, description: str = ""
    ) -> ProcessorEntry:
        compiled = pattern if isinstance(pattern, PathPattern) else compile_pattern(pattern)
        if compiled.template in self._templates:
            raise DuplicateProcessorError(compiled.template)
        entry = ProcessorEntry(
            pattern=compiled,
            handler=handler,
            description=description,
        )
        self._entries.append(entry)
        self._templates.add(compiled.template)
        return entry

    def register_all(self, specs: Iterable[ProcessorSpec]) -> None:
        for spec in specs:
            self.register_processor(spec.template, spec.handler, spec.description)

    def find_processor(
        self, path: str
    ) -> Optional[Tuple[ProcessorEntry, MatchResult]]:
        best: Optional[Tuple[ProcessorEntry, MatchResult]] = None
        for entry in self._entries:
            if not callable(entry.handler):
                logger.warning(
                    "Skipping processor without callable handler: %s", entry.pattern
                )
                continue
            match = match_path(path, entry.pattern)
            if not match.matches:
                continue
            if best is None or entry.pattern.specificity > best[0].pattern.specificity:
                best = (entry, match)
        return best
