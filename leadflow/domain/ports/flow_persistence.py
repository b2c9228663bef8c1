"""FlowPersistence Port - 编辑端的流程持久化接口

编辑会话通过这个接口与后端交互：
- 每次保存都发送完整的流程图
- 返回值是后端确认后的流程（含后端分配的 ID 和时间戳）

失败以异常形式抛出：
- NotFoundError: 流程不存在
- StructuralError: 后端拒绝激活
- TransportError: 网络错误、超时、5xx
- AuthError: 认证失效
- SerializationError: 响应无法解析
"""

from typing import Protocol

from leadflow.domain.entities.flow import Flow, FlowSummary


class FlowPersistence(Protocol):
    """流程持久化接口（异步）"""

    async def save(self, flow: Flow) -> Flow:
        """保存流程

        业务语义：
        - flow.id 为空字符串时创建，否则整体更新
        - 返回后端确认的流程
        """
        ...

    async def load(self, flow_id: str) -> Flow:
        ...

    async def list(self) -> list[FlowSummary]:
        ...

    async def delete(self, flow_id: str) -> None:
        ...

    async def duplicate(self, flow_id: str) -> str:
        """复制流程，返回新流程 ID（副本总是未启用）"""
        ...
