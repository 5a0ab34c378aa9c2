from __future__ import annotations


class OperationEngineError(RuntimeError):
    """Base error for engine misconfiguration (fail fast, never per-operation)."""


class PatternSyntaxError(OperationEngineError, ValueError):
    """Path template cannot be compiled."""

    def __init__(self, message: str, template: str):
        super().__init__(f"{message}: {template!r}")
        self.template = template


class DuplicateProcessorError(OperationEngineError):
    """Two processors registered for the same path template."""

    def __init__(self, template: str):
        super().__init__(f"processor already registered for {template!r}")
        self.template = template


class MutationFailedError(OperationEngineError):
    """Real mutation behind an optimistic update reported failure."""

    def __init__(self, message: str, key: object = None):
        super().__init__(message)
        self.key = key
