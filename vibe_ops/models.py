"""核心领域模型：操作指令、处理结果、错误记录与流程节点描述."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

OperationKind = Literal["put", "set", "remove"]


class ErrorKind(str, Enum):
    NO_PROCESSOR_FOUND = "NoProcessorFound"
    HANDLER_FAILURE = "HandlerFailure"
    UNEXPECTED_ERROR = "UnexpectedError"
    SERVICE_CALL_FAILURE = "ServiceCallFailure"
    VERIFICATION_FAILURE = "VerificationFailure"
    PERSISTENCE_FAILURE = "PersistenceFailure"


class Operation(BaseModel):
    """单条路径寻址的编辑指令."""

    path: str = Field(..., min_length=1, description="点分路径，数组下标写作 [n]")
    operation: OperationKind
    value: Any = None

    @field_validator("path")
    @classmethod
    def ensure_path_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("path must not be empty")
        return value.strip()


class OperationResult(BaseModel):
    """处理器返回值：成功时携带新资源，失败时携带错误."""

    success: bool
    result: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, result: Any) -> "OperationResult":
        return cls(success=True, result=result)

    @classmethod
    def fail(
        cls, error: str, kind: ErrorKind = ErrorKind.HANDLER_FAILURE
    ) -> "OperationResult":
        return cls(success=False, error=error, error_kind=kind)


class OperationError(BaseModel):
    """单条操作的失败记录；operation 保留原始指令，便于回放."""

    operation: Dict[str, Any]
    error: str
    kind: ErrorKind
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    context: Dict[str, Any] = Field(default_factory=dict)


class ApplyResult(BaseModel):
    """一次批量应用的结果，单条失败不会中断批次."""

    result: Dict[str, Any]
    errors: List[OperationError] = Field(default_factory=list)
    success_count: int = 0
    summary: str = ""


class ServiceResult(BaseModel):
    """外部协作者统一返回的 Result 结构."""

    success: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> "ServiceResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "ServiceResult":
        return cls(success=False, error=error)


class NodeDescriptor(BaseModel):
    """流程画布上的节点."""

    id: str = Field(..., min_length=1)
    type: str
    position: Dict[str, float] = Field(default_factory=lambda: {"x": 0.0, "y": 0.0})
    name: Optional[str] = None
    color: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    deletable: Optional[bool] = None


class EdgeDescriptor(BaseModel):
    """流程画布上的连线，sourceHandle 用于 if 节点的真假分支."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    label: Optional[str] = None
    type: str = "default"

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
