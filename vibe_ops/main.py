"""FastAPI 入口，暴露批量操作应用与流程接口。"""

from __future__ import annotations

import asyncio
import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from vibe_ops import config
from vibe_ops.logic.cache_gate import OptimisticCacheGate
from vibe_ops.logic.context import EngineServices
from vibe_ops.logic.operation_runner import OperationRunner
from vibe_ops.logic.registry import ProcessorRegistry
from vibe_ops.logic.retry import RetryPolicy
from vibe_ops.models import ApplyResult
from vibe_ops.processors import build_default_registry
from vibe_ops.services.color_assignment import NodeColorAssigner
from vibe_ops.services.notifications import NodesEdgesNotifier
from vibe_ops.services.query_cache import QueryCache, flow_query_key
from vibe_ops.services.start_nodes import StartNodeSeeder
from vibe_ops.storage.graph import GraphFlowStore
from vibe_ops.storage.memory import (
    InMemoryAgentService,
    InMemoryDataStoreNodeService,
    InMemoryIfNodeService,
)
from vibe_ops.storage.ports import FlowServicePort

app = FastAPI(title="Vibe Operation Engine API", version="0.1.0")

logger = logging.getLogger(__name__)


def _normalize_unhandled_exception(exc: Exception) -> tuple[int, str]:
    if isinstance(exc, (ValueError, TypeError, KeyError, ValidationError, json.JSONDecodeError)):
        detail = str(exc) or "invalid request payload"
        return 422, detail
    detail = str(exc) or exc.__class__.__name__
    return 503, f"service unavailable: {detail}"


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    status_code, detail = _normalize_unhandled_exception(exc)
    logger.exception("Unhandled exception")
    return JSONResponse(status_code=status_code, content={"detail": detail})


class ApplyPayload(BaseModel):
    resource: Dict[str, Any] = Field(default_factory=dict)
    operations: List[Dict[str, Any]]
    flow_id: Optional[str] = None


class FlowCreatePayload(BaseModel):
    name: str = Field(..., min_length=1)
    flow_id: Optional[str] = None


@lru_cache(maxsize=1)
def get_flow_store() -> GraphFlowStore:
    """GraphFlowStore 单例，避免重复建立连接。"""
    return GraphFlowStore(db_path=config.GRAPH_DB_PATH)


@lru_cache(maxsize=1)
def get_data_store_node_service() -> InMemoryDataStoreNodeService:
    return InMemoryDataStoreNodeService()


@lru_cache(maxsize=1)
def get_if_node_service() -> InMemoryIfNodeService:
    return InMemoryIfNodeService()


@lru_cache(maxsize=1)
def get_agent_service() -> InMemoryAgentService:
    return InMemoryAgentService()


@lru_cache(maxsize=1)
def get_notifier() -> NodesEdgesNotifier:
    return NodesEdgesNotifier()


@lru_cache(maxsize=1)
def get_query_cache() -> QueryCache:
    return QueryCache()


@lru_cache(maxsize=1)
def get_registry() -> ProcessorRegistry:
    return build_default_registry()


def get_retry_policy() -> RetryPolicy:
    """默认读取配置，可在测试 override 为无等待策略。"""
    return RetryPolicy.from_config()


def get_engine_services(
    flow: FlowServicePort = Depends(get_flow_store),
    data_store_nodes: InMemoryDataStoreNodeService = Depends(get_data_store_node_service),
    if_nodes: InMemoryIfNodeService = Depends(get_if_node_service),
    agents: InMemoryAgentService = Depends(get_agent_service),
    notifier: NodesEdgesNotifier = Depends(get_notifier),
    retry_policy: RetryPolicy = Depends(get_retry_policy),
) -> EngineServices:
    return EngineServices(
        flow=flow,
        data_store_nodes=data_store_nodes,
        if_nodes=if_nodes,
        agents=agents,
        colors=NodeColorAssigner(
            agents=agents, data_store_nodes=data_store_nodes, if_nodes=if_nodes
        ),
        notifier=notifier,
        retry_policy=retry_policy,
    )


def get_operation_runner(
    registry: ProcessorRegistry = Depends(get_registry),
    services: EngineServices = Depends(get_engine_services),
) -> OperationRunner:
    return OperationRunner(registry, services)


def get_start_node_seeder(
    flow: FlowServicePort = Depends(get_flow_store),
    cache: QueryCache = Depends(get_query_cache),
    notifier: NodesEdgesNotifier = Depends(get_notifier),
) -> StartNodeSeeder:
    return StartNodeSeeder(flow, OptimisticCacheGate(cache), notifier)


@app.post("/api/v1/operations/apply", response_model=ApplyResult)
async def apply_operations_endpoint(
    payload: ApplyPayload, runner: OperationRunner = Depends(get_operation_runner)
) -> ApplyResult:
    return await runner.apply(payload.resource, payload.operations, flow_id=payload.flow_id)


@app.post("/api/v1/flows")
async def create_flow_endpoint(
    payload: FlowCreatePayload,
    flow: FlowServicePort = Depends(get_flow_store),
    cache: QueryCache = Depends(get_query_cache),
    seeder: StartNodeSeeder = Depends(get_start_node_seeder),
) -> Dict[str, Any]:
    created = await flow.create_flow(name=payload.name, flow_id=payload.flow_id)
    if not created.success:
        raise HTTPException(status_code=409, detail=created.error)
    flow_id = created.value["id"]

    async def load_flow() -> Dict[str, Any]:
        return (await flow.get_flow(flow_id)).value

    key = flow_query_key(flow_id)
    cache.register_loader(key, load_flow)
    cache.set_query_data(key, created.value)
    return await seeder.seed(flow_id)


@app.get("/api/v1/flows/{flow_id}")
async def get_flow_endpoint(
    flow_id: str, flow: FlowServicePort = Depends(get_flow_store)
) -> Dict[str, Any]:
    loaded = await flow.get_flow(flow_id)
    if not loaded.success:
        raise HTTPException(status_code=404, detail=loaded.error)
    return loaded.value


@app.websocket("/ws/flows/{flow_id}")
async def flow_updates_socket(
    websocket: WebSocket,
    flow_id: str,
    notifier: NodesEdgesNotifier = Depends(get_notifier),
):
    queue = notifier.subscribe(flow_id)
    await websocket.accept()

    async def forward() -> None:
        while True:
            await websocket.send_json(await queue.get())

    forwarder = asyncio.ensure_future(forward())
    try:
        while True:
            message = await websocket.receive_json()
            await websocket.send_json({"ack": message})
    except WebSocketDisconnect:
        logger.info("Flow socket closed for %s", flow_id)
    finally:
        forwarder.cancel()
        notifier.unsubscribe(flow_id, queue)
