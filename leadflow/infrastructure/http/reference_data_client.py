"""ReferenceDataClient - 编辑器下拉框使用的参考数据

数据来源（只读）：
- /api/v1/amocrm/fields       CRM 自定义字段
- /api/v1/amocrm/pipelines    CRM 漏斗（含状态）
- /api/v1/dialer/schedulers   外呼调度器
- /api/v1/dialer/campaigns    外呼活动
- /api/v1/dialer/buckets      外呼 bucket

首次访问时加载并缓存，refresh() 按需重新拉取。
同一数据集的并发首次访问共享一个进行中的请求。
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from leadflow.domain.exceptions import SerializationError
from leadflow.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class _ReferenceModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CrmField(_ReferenceModel):
    id: int
    name: str
    type: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CrmStatus(_ReferenceModel):
    id: int
    name: str


class CrmPipeline(_ReferenceModel):
    id: int
    name: str
    statuses: list[CrmStatus] = Field(default_factory=list)


class DialerScheduler(_ReferenceModel):
    id: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DialerCampaign(_ReferenceModel):
    id: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DialerBucket(_ReferenceModel):
    id: str
    campaign_id: str = ""
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


ENDPOINTS: dict[str, tuple[str, type[BaseModel]]] = {
    "fields": ("/api/v1/amocrm/fields", CrmField),
    "pipelines": ("/api/v1/amocrm/pipelines", CrmPipeline),
    "schedulers": ("/api/v1/dialer/schedulers", DialerScheduler),
    "campaigns": ("/api/v1/dialer/campaigns", DialerCampaign),
    "buckets": ("/api/v1/dialer/buckets", DialerBucket),
}


class ReferenceDataClient:
    """带缓存的参考数据客户端"""

    def __init__(self, client: ApiClient):
        self.client = client
        self._cache: dict[str, list[Any]] = {}
        self._pending: dict[str, asyncio.Task[list[Any]]] = {}

    async def fields(self) -> list[CrmField]:
        return await self._get("fields")

    async def pipelines(self) -> list[CrmPipeline]:
        return await self._get("pipelines")

    async def schedulers(self) -> list[DialerScheduler]:
        return await self._get("schedulers")

    async def campaigns(self) -> list[DialerCampaign]:
        return await self._get("campaigns")

    async def buckets(self, campaign_id: str | None = None) -> list[DialerBucket]:
        buckets: list[DialerBucket] = await self._get("buckets")
        if campaign_id is None:
            return buckets
        return [bucket for bucket in buckets if bucket.campaign_id == campaign_id]

    async def statuses(self, pipeline_id: int) -> list[CrmStatus]:
        """某个漏斗下的状态（用于 update_lead 的状态下拉框）"""
        for pipeline in await self.pipelines():
            if pipeline.id == pipeline_id:
                return list(pipeline.statuses)
        return []

    async def load_all(self) -> None:
        """并发加载全部参考数据（已缓存的跳过）"""
        await asyncio.gather(*(self._get(name) for name in ENDPOINTS))

    async def refresh(self, name: str | None = None) -> None:
        """丢弃缓存并重新拉取（name 为 None 时刷新全部）"""
        names = [name] if name is not None else list(ENDPOINTS)
        for key in names:
            if key not in ENDPOINTS:
                raise ValueError(f"未知的参考数据: {key}")
            self._cache.pop(key, None)
        await asyncio.gather(*(self._get(key) for key in names))

    def clear(self) -> None:
        self._cache.clear()
        self._pending.clear()

    async def _get(self, name: str) -> list[Any]:
        if name in self._cache:
            return self._cache[name]
        task = self._pending.get(name)
        if task is None:
            task = asyncio.create_task(self._fetch(name))
            self._pending[name] = task
            task.add_done_callback(lambda done, key=name: self._forget(key, done))
        return await asyncio.shield(task)

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._pending.get(name) is task:
            del self._pending[name]

    async def _fetch(self, name: str) -> list[Any]:
        path, model = ENDPOINTS[name]
        data = await self.client.request("GET", path)
        items = _parse_list(model, data or [], path)
        self._cache[name] = items
        logger.debug(f"参考数据已加载: {name}, count={len(items)}")
        return items


def _parse_list(model: type[ModelT], data: Any, path: str) -> list[ModelT]:
    if not isinstance(data, list):
        raise SerializationError(f"{path} 应返回数组")
    try:
        return [model.model_validate(item) for item in data]
    except ValidationError as exc:
        raise SerializationError(f"无法解析 {path}: {exc.error_count()} 个字段错误") from exc


__all__ = [
    "CrmField",
    "CrmPipeline",
    "CrmStatus",
    "DialerBucket",
    "DialerCampaign",
    "DialerScheduler",
    "ReferenceDataClient",
]
