"""HttpFlowPersistenceAdapter - 基于 HTTP 的 FlowPersistence 实现

端点：
- POST   /api/v1/flows          创建（flow.id 为空）
- PUT    /api/v1/flows/{id}     整体更新
- GET    /api/v1/flows/{id}     加载
- GET    /api/v1/flows          列表
- DELETE /api/v1/flows/{id}     删除

复制在客户端完成：加载 → 改名为 "<name> (copy)"、未启用、清空 ID → 创建。
"""

import logging
from dataclasses import replace

from leadflow.domain.entities.flow import UNSAVED_FLOW_ID, Flow, FlowSummary
from leadflow.infrastructure.http.api_client import ApiClient
from leadflow.infrastructure.serialization.flow_wire import (
    decode_flow,
    decode_summaries,
    encode_flow,
)

logger = logging.getLogger(__name__)

FLOWS_PATH = "/api/v1/flows"
COPY_SUFFIX = " (copy)"


class HttpFlowPersistenceAdapter:
    """FlowPersistence 的 HTTP 实现"""

    def __init__(self, client: ApiClient):
        self.client = client

    async def save(self, flow: Flow) -> Flow:
        payload = encode_flow(flow)
        if flow.id == UNSAVED_FLOW_ID:
            logger.info(f"创建流程: name={flow.name}, nodes={len(flow.graph.nodes)}")
            data = await self.client.request("POST", FLOWS_PATH, json=payload)
        else:
            logger.info(f"更新流程: flow_id={flow.id}, is_active={flow.is_active}")
            data = await self.client.request(
                "PUT",
                f"{FLOWS_PATH}/{flow.id}",
                json=payload,
                entity=("Flow", flow.id),
            )
        return decode_flow(data)

    async def load(self, flow_id: str) -> Flow:
        data = await self.client.request(
            "GET", f"{FLOWS_PATH}/{flow_id}", entity=("Flow", flow_id)
        )
        return decode_flow(data)

    async def list(self) -> list[FlowSummary]:
        data = await self.client.request("GET", FLOWS_PATH)
        return decode_summaries(data or [])

    async def delete(self, flow_id: str) -> None:
        await self.client.request(
            "DELETE", f"{FLOWS_PATH}/{flow_id}", entity=("Flow", flow_id)
        )
        logger.info(f"流程已删除: flow_id={flow_id}")

    async def duplicate(self, flow_id: str) -> str:
        source = await self.load(flow_id)
        copy = replace(
            source,
            id=UNSAVED_FLOW_ID,
            name=f"{source.name}{COPY_SUFFIX}",
            graph=source.graph.copy(),
            is_active=False,
            created_at=None,
            updated_at=None,
        )
        created = await self.save(copy)
        logger.info(f"流程已复制: {flow_id} -> {created.id}")
        return created.id


__all__ = ["HttpFlowPersistenceAdapter"]
