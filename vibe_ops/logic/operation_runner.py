"""批量操作应用器：逐条解析、路由、执行，单条失败不影响后续."""

from __future__ import annotations

import copy
import inspect
import logging
import traceback
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from vibe_ops.logic.aliases import rewrite_alias
from vibe_ops.logic.context import EngineServices, OperationContext
from vibe_ops.logic.registry import ProcessorRegistry
from vibe_ops.models import (
    ApplyResult,
    ErrorKind,
    Operation,
    OperationError,
    OperationResult,
)

logger = logging.getLogger(__name__)


def summarize(total: int, success_count: int, error_count: int) -> str:
    summary = f"Applied {success_count} of {total} operations"
    if error_count:
        summary += f", {error_count} failed"
    return summary


class OperationRunner:
    def __init__(
        self,
        registry: ProcessorRegistry,
        services: Optional[EngineServices] = None,
    ):
        self.registry = registry
        self.services = services or EngineServices()

    async def apply(
        self,
        resource: Optional[Mapping[str, Any]],
        operations: Iterable[Operation | Mapping[str, Any]],
        flow_id: Optional[str] = None,
    ) -> ApplyResult:
        working: Dict[str, Any] = copy.deepcopy(dict(resource or {}))
        errors: List[OperationError] = []
        success_count = 0
        total = 0

        for index, raw in enumerate(operations):
            total += 1
            try:
                operation = raw if isinstance(raw, Operation) else Operation.model_validate(raw)
            except ValidationError as exc:
                errors.append(
                    self._record(
                        dict(raw) if isinstance(raw, Mapping) else {"value": raw},
                        f"Invalid operation: {exc.errors()[0]['msg']}",
                        ErrorKind.HANDLER_FAILURE,
                        index=index,
                    )
                )
                continue

            operation = rewrite_alias(operation, working)
            found = self.registry.find_processor(operation.path)
            if found is None:
                errors.append(
                    self._record(
                        operation.model_dump(),
                        f"No processor found for path: {operation.path}",
                        ErrorKind.NO_PROCESSOR_FOUND,
                        index=index,
                    )
                )
                continue
            entry, match = found

            # 处理器在副本上执行，仅成功时替换工作资源
            staged = copy.deepcopy(working)
            context = OperationContext(
                path=operation.path,
                operation=operation.operation,
                value=operation.value,
                resource=staged,
                index=index,
                flow_id=flow_id,
                services=self.services,
            )
            try:
                outcome = entry.handler(context, match)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
                result = (
                    outcome
                    if isinstance(outcome, OperationResult)
                    else OperationResult.model_validate(outcome)
                )
            except Exception as exc:
                logger.warning(
                    "Processor %s raised on operation %s", entry.pattern, index, exc_info=True
                )
                errors.append(
                    self._record(
                        operation.model_dump(),
                        str(exc) or exc.__class__.__name__,
                        ErrorKind.UNEXPECTED_ERROR,
                        index=index,
                        processor=entry.pattern.template,
                        stack=traceback.format_exc(),
                    )
                )
                continue

            if result.success:
                working = result.result if isinstance(result.result, dict) else staged
                success_count += 1
            else:
                errors.append(
                    self._record(
                        operation.model_dump(),
                        result.error or "Processor reported failure",
                        result.error_kind or ErrorKind.HANDLER_FAILURE,
                        index=index,
                        processor=entry.pattern.template,
                    )
                )

        summary = summarize(total, success_count, len(errors))
        logger.info("Operation batch finished: %s", summary)
        return ApplyResult(
            result=working, errors=errors, success_count=success_count, summary=summary
        )

    @staticmethod
    def _record(
        operation: Dict[str, Any], error: str, kind: ErrorKind, **context: Any
    ) -> OperationError:
        logger.warning(
            "Operation %s failed (%s): %s", operation.get("path"), kind.value, error
        )
        return OperationError(operation=operation, error=error, kind=kind, context=context)
